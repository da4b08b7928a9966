# recetai/services/recipe/errors.py
# 레시피 생성 예외 + 공용 에러 메시지
# - RecipeValidationError: 형식은 맞지만 내용(테마/영양 목표)이 규칙 위반 → 교정 재시도 대상
# - LLMCommunicationError: LLM 통신/파싱 실패 또는 예상 못 한 예외 → 재시도 없이 전파
# - 스키마 오류는 pydantic.ValidationError 그대로 사용

from __future__ import annotations
from typing import Optional


class RecipeGenerationError(Exception):
    pass


class RecipeValidationError(RecipeGenerationError):
    # 생성된 레시피의 구조/내용 검증 실패
    pass


class LLMCommunicationError(RecipeGenerationError):
    """LLM 호출 또는 응답 처리 실패 (검증 오류가 아닌 것).

    raw_response: 진단용 원문 응답 (없으면 None)
    """

    def __init__(self, message: str, raw_response: Optional[str] = None):
        super().__init__(message)
        self.raw_response = raw_response


class LLMNotReady(LLMCommunicationError):
    # SDK 미설치 / API 키 없음
    pass


def format_number(v: float) -> str:
    # 600.0 → "600", 12.5 → "12.5", 1500000 → "1500000" (지수 표기 없음)
    v = float(v)
    return str(int(v)) if v.is_integer() else repr(v)


class ErrorMessages:
    @staticmethod
    def value_below_min(metric_with_unit: str, limit: float, actual: float) -> str:
        return (
            f"The recipe does not meet the minimum of {format_number(limit)} {metric_with_unit}. "
            f"Total: {actual:.2f}"
        )

    @staticmethod
    def value_above_max(metric_with_unit: str, limit: float, actual: float) -> str:
        return (
            f"The recipe exceeds the maximum of {format_number(limit)} {metric_with_unit}. "
            f"Total: {actual:.2f}"
        )

    @staticmethod
    def missing_theme(theme: str) -> str:
        return f"The generated recipe does not include the required theme: {theme}"

    @staticmethod
    def generation_failed(error: BaseException) -> str:
        return f"Failed to generate the recipe: {str(error) or type(error).__name__}"

    @staticmethod
    def json_parse_failed(error: BaseException) -> str:
        return f"Failed to parse the model response as JSON. {error}"

    @staticmethod
    def generation_failed_after_several_attempts() -> str:
        return "Failed to generate a valid recipe after several attempts"
