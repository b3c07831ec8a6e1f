"""
Schema Registry - output-shape contracts per operation.

Each contract pairs:
- `response_schema`: the declarative shape handed to Gemini as
  `response_schema` (camelCase field names, enum domains, required fields)
- `model`: the pydantic model the parsed JSON is validated into

`required` in a response schema is an instruction to the model. On the way
back in, missing array fields always become empty lists and missing scalars
take their model default; only type mismatches fail validation.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Type

from pydantic import ValidationError

from ..core.exceptions import MalformedResponse
from .models import (
    AnalysisResult,
    CitationSet,
    CitationType,
    DirectorPlan,
    EnhancementLog,
    ExperimentType,
    ExperimentVariantSet,
    HookOptionSet,
    HookType,
    PartialScript,
    Reliability,
    ScriptPackage,
    Severity,
    SimulationResult,
    StudioModel,
    TitlePattern,
    TitleSet,
    TopicSuggestionSet,
    TopicSuggestionType,
    ViralityLabel,
)

logger = logging.getLogger(__name__)


# ============================================================================
# Schema Builders
# ============================================================================

def _string(enum=None) -> Dict[str, Any]:
    schema: Dict[str, Any] = {"type": "STRING"}
    if enum is not None:
        schema["enum"] = [member.value for member in enum]
    return schema


def _number() -> Dict[str, Any]:
    return {"type": "NUMBER"}


def _boolean() -> Dict[str, Any]:
    return {"type": "BOOLEAN"}


def _array(items: Dict[str, Any]) -> Dict[str, Any]:
    return {"type": "ARRAY", "items": items}


def _object(properties: Dict[str, Any], required: Optional[List[str]] = None) -> Dict[str, Any]:
    schema: Dict[str, Any] = {"type": "OBJECT", "properties": properties}
    if required:
        schema["required"] = required
    return schema


SEGMENT_SCHEMA = _object(
    {
        "visual": _string(),
        "audio": _string(),
        "isWeak": _boolean(),
        "rewriteSuggestion": _string(),
    },
    required=["visual", "audio"],
)

CITATION_SCHEMA = _object(
    {
        "id": _string(),
        "type": _string(CitationType),
        "sourceName": _string(),
        "context": _string(),
        "reliabilityScore": _string(Reliability),
        "isVerified": _boolean(),
        "url": _string(),
    },
    required=["type", "sourceName", "context"],
)


# ============================================================================
# Contracts
# ============================================================================

@dataclass(frozen=True)
class SchemaContract:
    """Output-shape contract for one operation."""
    name: str
    response_schema: Dict[str, Any]
    model: Type[StudioModel]

    def validate(self, data: Any) -> StudioModel:
        """
        Validate parsed JSON into this contract's model.

        Args:
            data: Object returned by the response normalizer

        Returns:
            Model instance with all array fields populated (never None)

        Raises:
            MalformedResponse: If the payload is not an object or has wrong types
        """
        if not isinstance(data, dict):
            raise MalformedResponse(
                repr(data),
                reason=f"{self.name}: expected a JSON object, got {type(data).__name__}",
            )
        try:
            return self.model.model_validate(data)
        except ValidationError as e:
            logger.warning(f"{self.name} failed validation: {e.error_count()} error(s)")
            raise MalformedResponse(
                repr(data),
                reason=f"{self.name}: response did not match the expected schema",
            ) from e


SCRIPT_PACKAGE = SchemaContract(
    name="ScriptPackage",
    model=ScriptPackage,
    response_schema=_object(
        {
            "title": _string(),
            "detectedIntent": _string(),
            "targetAudience": _string(),
            "segments": _array(SEGMENT_SCHEMA),
            "ctas": _array(_string()),
            "citations": _array(CITATION_SCHEMA),
            "autoCreatorSelection": _object(
                {
                    "selectedId": _string(),
                    "reason": _string(),
                    "alternatives": _array(_string()),
                },
                required=["selectedId", "reason"],
            ),
            "blendMetadata": _object(
                {
                    "primaryCreator": _string(),
                    "secondaryCreators": _array(_string()),
                    "blendRatio": _string(),
                },
                required=["primaryCreator", "blendRatio"],
            ),
        },
        required=["title", "segments"],
    ),
)

PARTIAL_SCRIPT = SchemaContract(
    name="PartialScript",
    model=PartialScript,
    response_schema=_object({"segments": _array(SEGMENT_SCHEMA)}, required=["segments"]),
)

ANALYSIS_RESULT = SchemaContract(
    name="AnalysisResult",
    model=AnalysisResult,
    response_schema=_object(
        {
            "hookScore": _number(),
            "viralityLabel": _string(ViralityLabel),
            "retentionData": _array(_object({"time": _string(), "retention": _number()})),
            "suggestions": _array(_string()),
            "dropOffPrediction": _string(),
            "truthScore": _number(),
            "monetizationRisks": _array(_string()),
            "safetyFlags": _array(
                _object({"severity": _string(Severity), "reason": _string()})
            ),
        },
        required=["hookScore", "viralityLabel", "retentionData", "suggestions"],
    ),
)

HOOK_OPTION_SET = SchemaContract(
    name="HookOptionSet",
    model=HookOptionSet,
    response_schema=_object(
        {
            "hooks": _array(
                _object(
                    {
                        "id": _string(),
                        "type": _string(HookType),
                        "visual": _string(),
                        "audio": _string(),
                        "score": _number(),
                        "reasoning": _string(),
                    },
                    required=["type", "audio"],
                )
            )
        },
        required=["hooks"],
    ),
)

SIMULATION_RESULT = SchemaContract(
    name="SimulationResult",
    model=SimulationResult,
    response_schema=_object(
        {
            "retentionHeatmap": _array(
                _object({"second": _number(), "score": _number(), "comment": _string()})
            ),
            "personas": _array(
                _object(
                    {
                        "id": _string(),
                        "demographic": _string(),
                        "reaction": _string(),
                        "dropPointTime": _string(),
                        "emotionalTrigger": _string(),
                    }
                )
            ),
            "microFixes": _array(
                _object({"original": _string(), "fix": _string(), "impact": _string()})
            ),
            "predictedRetention": _number(),
        },
        required=["retentionHeatmap", "predictedRetention"],
    ),
)

DIRECTOR_PLAN = SchemaContract(
    name="DirectorPlan",
    model=DirectorPlan,
    response_schema=_object(
        {
            "scenes": _array(
                _object(
                    {
                        "id": _string(),
                        "timeStart": _string(),
                        "duration": _string(),
                        "cameraDirection": _string(),
                        "audioCue": _string(),
                        "visualPrompt": _string(),
                        "onScreenText": _string(),
                    }
                )
            ),
            "thumbnails": _array(
                _object({"description": _string(), "textOverlay": _string(), "score": _number()})
            ),
            "editingNotes": _string(),
            "musicMood": _string(),
        },
        required=["scenes"],
    ),
)

CITATION_SET = SchemaContract(
    name="CitationSet",
    model=CitationSet,
    response_schema=_object({"citations": _array(CITATION_SCHEMA)}, required=["citations"]),
)

EXPERIMENT_VARIANT_SET = SchemaContract(
    name="ExperimentVariantSet",
    model=ExperimentVariantSet,
    response_schema=_object(
        {
            "variants": _array(
                _object(
                    {
                        "id": _string(),
                        "type": _string(ExperimentType),
                        "predictedWinner": _boolean(),
                        "confidence": _number(),
                        "reason": _string(),
                    }
                )
            )
        },
        required=["variants"],
    ),
)

TITLE_SET = SchemaContract(
    name="TitleSet",
    model=TitleSet,
    response_schema=_object(
        {
            "titles": _array(
                _object(
                    {
                        "text": _string(),
                        "ctrScore": _number(),
                        "pattern": _string(TitlePattern),
                        "thumbnailText": _string(),
                        "reasoning": _string(),
                    },
                    required=["text"],
                )
            )
        },
        required=["titles"],
    ),
)

TOPIC_SUGGESTION_SET = SchemaContract(
    name="TopicSuggestionSet",
    model=TopicSuggestionSet,
    response_schema=_object(
        {
            "suggestions": _array(
                _object(
                    {
                        "refinedTopic": _string(),
                        "reason": _string(),
                        "type": _string(TopicSuggestionType),
                    },
                    required=["refinedTopic"],
                )
            )
        },
        required=["suggestions"],
    ),
)

ENHANCEMENT_LOG = SchemaContract(
    name="EnhancementLog",
    model=EnhancementLog,
    response_schema=_object(
        {
            "improvedFields": _array(_string()),
            "summary": _string(),
        },
        required=["improvedFields", "summary"],
    ),
)


REGISTRY: Dict[str, SchemaContract] = {
    contract.name: contract
    for contract in (
        SCRIPT_PACKAGE,
        PARTIAL_SCRIPT,
        ANALYSIS_RESULT,
        HOOK_OPTION_SET,
        SIMULATION_RESULT,
        DIRECTOR_PLAN,
        CITATION_SET,
        EXPERIMENT_VARIANT_SET,
        TITLE_SET,
        TOPIC_SUGGESTION_SET,
        ENHANCEMENT_LOG,
    )
}


def get_schema(name: str) -> SchemaContract:
    """
    Look up a contract by name.

    Raises:
        KeyError: If no contract is registered under `name`
    """
    try:
        return REGISTRY[name]
    except KeyError:
        raise KeyError(f"No schema registered for '{name}'. Known: {', '.join(sorted(REGISTRY))}")
