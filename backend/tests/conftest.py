"""
Pytest Configuration and Fakes
==============================

In-memory stand-ins for the generation pipeline's collaborators:
- FakeCollection / FakeDB: the subset of motor's async collection API we use
- ScriptedLLM: returns canned responses in order and counts calls
- FakeCatalog / FakeVectorSearch: catalog reader and vector search contracts

No test touches a real MongoDB or OpenAI.
"""

import asyncio
import copy
import json
import re
from typing import Any, Dict, List, Optional

import pytest

from recetai.models.schemas import CatalogProduct, VectorHit
from recetai.services.recipe.ports import CacheEntry


def run_async(coro):
    """Helper to run async functions in sync tests."""
    return asyncio.run(coro)


# =============================================================================
# In-memory Mongo
# =============================================================================

def _match_value(value: Any, cond: Any) -> bool:
    if isinstance(cond, dict) and any(k.startswith("$") for k in cond):
        for op, arg in cond.items():
            if op == "$in" and value not in arg:
                return False
            if op == "$nin" and value in arg:
                return False
            if op == "$exists" and (value is not None) != bool(arg):
                return False
            if op == "$regex":
                flags = re.I if "i" in cond.get("$options", "") else 0
                if not isinstance(value, str) or not re.search(arg, value, flags):
                    return False
        return True
    return value == cond


def matches(doc: Dict[str, Any], query: Dict[str, Any]) -> bool:
    for key, cond in (query or {}).items():
        if key == "$or":
            if not any(matches(doc, sub) for sub in cond):
                return False
        elif not _match_value(doc.get(key), cond):
            return False
    return True


def project(doc: Dict[str, Any], projection: Optional[Dict[str, int]]) -> Dict[str, Any]:
    doc = copy.deepcopy(doc)
    if not projection:
        return doc
    include = {k for k, v in projection.items() if v and k != "_id"}
    if include:
        out = {k: doc[k] for k in include if k in doc}
        if projection.get("_id", 1) and "_id" in doc:
            out["_id"] = doc["_id"]
        return out
    return {k: v for k, v in doc.items() if projection.get(k, 1)}


class FakeCursor:
    def __init__(self, docs: List[Dict[str, Any]]):
        self._docs = docs
        self._skip = 0
        self._limit = 0

    def sort(self, key, direction=1):
        self._docs = sorted(self._docs, key=lambda d: d.get(key) or "", reverse=direction < 0)
        return self

    def skip(self, n):
        self._skip = n
        return self

    def limit(self, n):
        self._limit = n
        return self

    def _window(self):
        docs = self._docs[self._skip:]
        return docs[: self._limit] if self._limit else docs

    async def to_list(self, length=None):
        docs = self._window()
        return docs[:length] if length else docs

    def __aiter__(self):
        self._iter = iter(self._window())
        return self

    async def __anext__(self):
        try:
            return next(self._iter)
        except StopIteration:
            raise StopAsyncIteration


class FakeCollection:
    def __init__(self, docs: Optional[List[Dict[str, Any]]] = None):
        self.docs: List[Dict[str, Any]] = [copy.deepcopy(d) for d in (docs or [])]
        self.indexes: List[Any] = []
        self.find_calls = 0

    def find(self, query=None, projection=None):
        self.find_calls += 1
        return FakeCursor([project(d, projection) for d in self.docs if matches(d, query)])

    async def find_one(self, query=None, projection=None):
        for d in self.docs:
            if matches(d, query):
                return project(d, projection)
        return None

    async def count_documents(self, query):
        return sum(1 for d in self.docs if matches(d, query))

    async def update_one(self, query, update, upsert=False):
        for d in self.docs:
            if matches(d, query):
                d.update(copy.deepcopy(update.get("$set", {})))
                return
        if upsert:
            doc = {k: v for k, v in query.items() if not isinstance(v, dict)}
            doc.update(copy.deepcopy(update.get("$setOnInsert", {})))
            doc.update(copy.deepcopy(update.get("$set", {})))
            self.docs.append(doc)

    async def delete_one(self, query):
        for i, d in enumerate(self.docs):
            if matches(d, query):
                del self.docs[i]
                return

    async def create_index(self, keys, **kwargs):
        self.indexes.append((keys, kwargs))


class FakeDB:
    def __init__(self, **collections: FakeCollection):
        self._collections: Dict[str, FakeCollection] = dict(collections)

    def __getitem__(self, name: str) -> FakeCollection:
        return self._collections.setdefault(name, FakeCollection())

    async def command(self, name):
        return {"ok": 1}


# =============================================================================
# LLM
# =============================================================================

class ScriptedSession:
    def __init__(self, llm: "ScriptedLLM"):
        self.llm = llm
        self.prompts: List[str] = []

    async def send(self, prompt: str) -> str:
        self.prompts.append(prompt)
        self.llm.prompts.append(prompt)
        self.llm.calls += 1
        if not self.llm.responses:
            raise AssertionError("ScriptedLLM ran out of responses")
        resp = self.llm.responses.pop(0) if len(self.llm.responses) > 1 else self.llm.responses[0]
        if isinstance(resp, BaseException):
            raise resp
        return resp


class ScriptedLLM:
    """Responses are consumed in order; the last one repeats forever."""

    def __init__(self, *responses):
        self.responses = list(responses)
        self.calls = 0
        self.sessions = 0
        self.prompts: List[str] = []

    def open(self) -> ScriptedSession:
        self.sessions += 1
        return ScriptedSession(self)


# =============================================================================
# Catalog / vector search
# =============================================================================

class FakeCatalog:
    def __init__(self, products: List[CatalogProduct]):
        self.products = {p.id: p for p in products}
        self.sample_calls: List[tuple] = []

    async def find_by_ids(self, ids):
        return [self.products[i] for i in ids if i in self.products]

    async def sample(self, exclude_ids, limit):
        self.sample_calls.append((list(exclude_ids), limit))
        return [p for pid, p in self.products.items() if pid not in set(exclude_ids)][:limit]


class FakeVectorSearch:
    """theme (lowercase) → product ids; a BaseException value is raised instead."""

    def __init__(self, hits: Optional[Dict[str, Any]] = None):
        self.hits = hits or {}
        self.queries: List[str] = []

    async def search(self, text, k):
        self.queries.append(text)
        found = self.hits.get(text.lower(), [])
        if isinstance(found, BaseException):
            raise found
        return [VectorHit(id=i, score=0.9) for i in found][:k]


class FakeCache:
    def __init__(self, fail_get: bool = False, fail_put: bool = False):
        self.entries: Dict[str, Any] = {}
        self.fail_get = fail_get
        self.fail_put = fail_put
        self.puts = 0

    async def get(self, key):
        if self.fail_get:
            raise ConnectionError("cache down")
        return self.entries.get(key)

    async def put(self, key, recipe):
        self.puts += 1
        if self.fail_put:
            raise ConnectionError("cache down")
        self.entries.setdefault(key, CacheEntry(key=key, recipe=recipe))


# =============================================================================
# Sample data
# =============================================================================

def make_product(pid: str, name: str, brand: Optional[str] = "Hacendado", **nutrition) -> CatalogProduct:
    return CatalogProduct(
        id=pid,
        name=name,
        brand=brand,
        category="alimentacion",
        nutritionalInfo=nutrition or {"calories": 100, "protein": 5, "carbs": 10, "fat": 2},
    )


def recipe_payload(**overrides) -> Dict[str, Any]:
    payload = {
        "name": "arroz con pollo",
        "description": "plato sencillo de arroz integral con pollo.",
        "preparationTime": 30,
        "servings": 2,
        "difficulty": "easy",
        "ingredients": [
            {"name": "arroz integral (Hacendado)", "quantity": 150, "unit": "g"},
            {"name": "pechuga de pollo (Hacendado)", "quantity": 200, "unit": "g"},
            {"name": "tomate", "quantity": 1, "unit": "unit"},
        ],
        "steps": ["cocer el arroz", "dorar el pollo", "mezclar"],
        "nutritionalInfo": {"calories": 520, "protein": 38, "carbs": 55, "fat": 12},
        "dietaryTags": ["high protein"],
    }
    payload.update(overrides)
    return payload


def fenced(payload: Dict[str, Any]) -> str:
    return "```json\n" + json.dumps(payload, ensure_ascii=False) + "\n```"


@pytest.fixture
def products():
    return [
        make_product("p1", "arroz integral"),
        make_product("p2", "pechuga de pollo"),
        make_product("p3", "tomate triturado"),
        make_product("p4", "aceite de oliva virgen extra"),
    ]


@pytest.fixture
def catalog(products):
    return FakeCatalog(products)
