import json
import math
from typing import Iterable, Optional

from pydantic import ValidationError

from errors import DecodeFailure, ServiceReportedError
from interfaces.analysisModels import AnalysisResponse, DecodeResult, IngredientAnalysis
from interfaces.productModels import NotesFormat, NutritionFactsModel, ProductRecord
from logger_manager import log_debug, log_info, log_warning
from utils.analysis_utils import extract_json_candidate, reformat_json
from utils.narrative_utils import build_user_notes

UNKNOWN_PRODUCT = "Unknown Product"
DEFAULT_HEALTH_SCORE = 50
HIGH_CONCERN_PENALTY = 20
HIGH_CONCERN_FLOOR = 10

# base score per processing level
PROCESSING_LEVEL_SCORES = {
    "minimally": 85,
    "moderately": 60,
    "highly": 30,
}


def calculate_health_score(
    processing_level: Optional[str],
    natural_content_percentage: Optional[float],
    ingredients: Iterable[IngredientAnalysis],
) -> int:
    """Heuristic 0-100 score from processing level, natural content and concerns.

    The base comes from the processing level and is averaged (truncating) with
    the natural-content percentage when one is given. Any high-concern
    ingredient costs 20 points, without going below 10.
    """
    score = PROCESSING_LEVEL_SCORES.get((processing_level or "").strip().lower(), DEFAULT_HEALTH_SCORE)

    if natural_content_percentage is not None and math.isfinite(natural_content_percentage):
        score = (score + int(natural_content_percentage)) // 2

    if any(ingredient.concern_level == "high" for ingredient in ingredients):
        score = max(score - HIGH_CONCERN_PENALTY, HIGH_CONCERN_FLOOR)

    return max(0, min(100, score))


def _is_error_payload(payload) -> bool:
    return (
        isinstance(payload, dict)
        and isinstance(payload.get("error"), str)
        and "ingredients" not in payload
    )


def build_product_record(analysis: AnalysisResponse, raw_analysis: Optional[str] = None) -> ProductRecord:
    """Turn a validated analysis into a new ProductRecord with narrative notes."""
    ingredient_names = [i.name.strip() for i in analysis.ingredients if i.name and i.name.strip()]
    notes = build_user_notes(analysis)
    return ProductRecord(
        name=(analysis.product_name or "").strip() or UNKNOWN_PRODUCT,
        brand=analysis.brand_name,
        category=analysis.category,
        ingredients=ingredient_names,
        allergens=[a.strip() for a in (analysis.allergens or []) if a and a.strip()],
        health_score=calculate_health_score(
            analysis.processing_level,
            analysis.natural_content_percentage,
            analysis.ingredients,
        ),
        user_notes=notes or None,
        notes_format=NotesFormat.NARRATIVE if notes else None,
        raw_analysis=raw_analysis,
        nutrition_facts=NutritionFactsModel.zero(),
    )


def parse_analysis_payload(text: Optional[str]):
    """Parse the JSON inside a service answer. Raises DecodeFailure."""
    candidate = extract_json_candidate(text)
    if not candidate:
        raise DecodeFailure("Empty analysis response")
    try:
        return json.loads(candidate)
    except json.JSONDecodeError as e:
        raise DecodeFailure(f"Analysis response is not valid JSON: {e}") from e


def validate_analysis(payload) -> AnalysisResponse:
    try:
        return AnalysisResponse.model_validate(payload)
    except ValidationError as e:
        raise DecodeFailure(f"Analysis response does not match the expected schema: {e.error_count()} errors") from e


def decode_analysis_response(text: Optional[str], keep_raw_payload: bool = False) -> DecodeResult:
    """Decode the service's raw answer into a ProductRecord.

    Never raises: malformed input and explicit error payloads come back as
    tagged results, and falling back to a default product is up to the caller.
    """
    try:
        payload = parse_analysis_payload(text)
    except DecodeFailure as e:
        log_warning(e.message)
        return DecodeResult(kind="malformed", error=e, message=e.message)

    # error-shaped answers are checked before the full schema
    if _is_error_payload(payload):
        message = payload["error"]
        log_info(f"Analysis service reported an error: {message}")
        return DecodeResult(kind="service_error", error=ServiceReportedError(message), message=message)

    try:
        analysis = validate_analysis(payload)
    except DecodeFailure as e:
        log_warning(e.message)
        return DecodeResult(kind="malformed", error=e, message=e.message)

    record = build_product_record(analysis, reformat_json(payload) if keep_raw_payload else None)
    log_debug(f"Decoded product '{record.name}' with {len(record.ingredients)} ingredients, "
              f"health score {record.health_score}")
    return DecodeResult(kind="ok", record=record, analysis=analysis)
