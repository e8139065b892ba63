from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from src.common.errors import DecodeError, EvaluationError, RecommenderError

from .queries import Query

logger = logging.getLogger(__name__)


class RawQueryResult(BaseModel):
    """Value produced by a policy query, keyed the way the Rego policies emit it."""

    model_config = ConfigDict(strict=True, extra="ignore", frozen=True)

    allow: bool = Field(False, alias="ALLOW")
    policy_id: str = Field("", alias="POLICY_ID")
    policy_version: str = Field("", alias="POLICY_VERSION")
    policy_severity: str = Field("", alias="POLICY_SEVERITY")
    policy_title: str = Field("", alias="POLICY_TITLE")
    success_message: str = Field("", alias="POLICY_SUCCESS_MESSAGE")
    failure_message: List[str] = Field(default_factory=list, alias="FAILURE_MESSAGE")


def decode_result(value: Any) -> RawQueryResult:
    if not isinstance(value, dict):
        raise DecodeError(f"query value must be an object, got {type(value).__name__}")
    # Null fields decode to their zero value.
    present = {key: item for key, item in value.items() if item is not None}
    try:
        return RawQueryResult.model_validate(present)
    except ValidationError as exc:
        raise DecodeError(f"could not decode query result: {exc}") from exc


def evaluate(query: Query, document: Dict[str, Any]) -> Optional[RawQueryResult]:
    """Run ``query`` against ``document``.

    Returns ``None`` unless the query produced exactly one result set; only
    single results are turned into recommendations.
    """

    try:
        results = query.eval(document)
    except RecommenderError:
        raise
    except Exception as exc:
        raise EvaluationError(f"query evaluation failed: {exc}") from exc

    if len(results) != 1:
        logger.debug("Dropping query result with %d result set(s)", len(results))
        return None

    result_set = results[0]
    expressions = result_set.get("expressions") if isinstance(result_set, dict) else None
    if not isinstance(expressions, list) or not expressions or not isinstance(expressions[0], dict):
        raise DecodeError("query result set has no expressions")
    return decode_result(expressions[0].get("value"))


__all__ = ["RawQueryResult", "decode_result", "evaluate"]
