"""Hand-weighted learning style point accumulator."""

from __future__ import annotations

from typing import Any, Dict, List, Mapping, Optional, Tuple

from learning_taxonomy import LearningStyle, LegacyLearningStyle, STYLE_TO_LEGACY

SIGNIFICANT_STYLE_THRESHOLD = 10

# Fixed points awarded per action type, applied before metadata rules.
ACTION_STYLE_POINTS: Dict[str, Tuple[Tuple[LearningStyle, int], ...]] = {
    "pattern_creation": ((LearningStyle.VISUAL, 2), (LearningStyle.PRACTICAL, 1)),
    "cultural_exploration": ((LearningStyle.REFLECTIVE, 2), (LearningStyle.VERBAL, 1)),
    "debug_success": ((LearningStyle.LOGICAL, 2), (LearningStyle.REFLECTIVE, 1)),
    "debug_failure": ((LearningStyle.LOGICAL, 2), (LearningStyle.REFLECTIVE, 1)),
    "story_progress": ((LearningStyle.VERBAL, 2), (LearningStyle.REFLECTIVE, 1)),
    "block_connection": ((LearningStyle.VISUAL, 1), (LearningStyle.LOGICAL, 1)),
}

_HINT_STYLES = {
    "visual": LearningStyle.VISUAL,
    "verbal": LearningStyle.VERBAL,
    "logical": LearningStyle.LOGICAL,
}

CONTENT_FORMATS: Dict[LearningStyle, str] = {
    LearningStyle.VISUAL: "visual",
    LearningStyle.VERBAL: "text",
    LearningStyle.LOGICAL: "structured",
    LearningStyle.PRACTICAL: "example",
    LearningStyle.REFLECTIVE: "detailed",
    LearningStyle.SOCIAL: "interactive",
}


def _meta_value(metadata: Mapping[str, Any], *keys: str) -> Any:
    for key in keys:
        if key in metadata and metadata[key] is not None:
            return metadata[key]
    return None


def _as_number(value: Any) -> Optional[float]:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


class LearningStyleClassifier:
    """Accumulate style points from learner actions.

    Points are additive and never decay unless :meth:`reset` is called.
    Metadata may be given as a plain mapping with camelCase keys or as an
    :class:`schemas.ActionMetadata` instance.
    """

    def __init__(self, points: Optional[Mapping[str, int]] = None) -> None:
        self._points: Dict[LearningStyle, int] = {style: 0 for style in LearningStyle}
        if points:
            self.load_points(points)

    # ----- updates -----------------------------------------------------
    def update(self, action_type: str, metadata: Optional[Any] = None) -> None:
        meta = self._normalise_metadata(metadata)

        for style, value in ACTION_STYLE_POINTS.get(action_type, ()):
            self._points[style] += value

        if action_type == "challenge_completion":
            self._score_challenge_completion(meta)

        if meta.get("shared") is True:
            self._points[LearningStyle.SOCIAL] += 2

        if meta.get("viewedHint") is True:
            hint_style = _HINT_STYLES.get(str(meta.get("hintType") or "").lower())
            if hint_style is not None:
                self._points[hint_style] += 1

    def _score_challenge_completion(self, meta: Mapping[str, Any]) -> None:
        seconds = _as_number(meta.get("completionTimeSeconds"))
        attempts = _as_number(meta.get("attempts"))
        blocks = _as_number(meta.get("blockCount"))

        if seconds is not None and attempts is not None:
            if seconds < 60 and attempts == 1:
                self._points[LearningStyle.PRACTICAL] += 2
            elif seconds > 300 and attempts > 2:
                self._points[LearningStyle.REFLECTIVE] += 2

        if blocks is not None:
            if blocks > 10:
                self._points[LearningStyle.LOGICAL] += 1
            elif blocks <= 5:
                self._points[LearningStyle.PRACTICAL] += 1

    @staticmethod
    def _normalise_metadata(metadata: Optional[Any]) -> Dict[str, Any]:
        if metadata is None:
            return {}
        if hasattr(metadata, "model_dump"):
            return metadata.model_dump(by_alias=True, exclude_none=True)
        raw = dict(metadata)
        # Accept snake_case keys from Python callers as well.
        aliases = {
            "completion_time_seconds": "completionTimeSeconds",
            "block_count": "blockCount",
            "viewed_hint": "viewedHint",
            "hint_type": "hintType",
        }
        for snake, camel in aliases.items():
            if snake in raw and camel not in raw:
                raw[camel] = _meta_value(raw, snake)
        return raw

    def reset(self) -> None:
        for style in self._points:
            self._points[style] = 0

    # ----- queries -----------------------------------------------------
    @property
    def total_points(self) -> int:
        return sum(self._points.values())

    def points(self) -> Dict[LearningStyle, int]:
        return dict(self._points)

    def primary_style(self) -> LearningStyle:
        best = LearningStyle.VISUAL
        best_points = -1
        # Strict comparison keeps the first-declared style on ties.
        for style in LearningStyle:
            if self._points[style] > best_points:
                best = style
                best_points = self._points[style]
        return best

    def confidences(self) -> Dict[LearningStyle, float]:
        total = self.total_points
        if total == 0:
            return {style: 0.1 for style in LearningStyle}
        return {style: 0.1 + 0.9 * self._points[style] / total for style in LearningStyle}

    def confidence(self, style: Optional[LearningStyle] = None) -> float:
        return self.confidences()[style or self.primary_style()]

    def significant_styles(self, threshold: int = SIGNIFICANT_STYLE_THRESHOLD) -> List[LearningStyle]:
        styles = [style for style in LearningStyle if self._points[style] >= threshold]
        return styles or [self.primary_style()]

    def preferred_content_format(self) -> str:
        return CONTENT_FORMATS[self.primary_style()]

    def legacy_label(self) -> LegacyLearningStyle:
        return STYLE_TO_LEGACY[self.primary_style()]

    # ----- persistence -------------------------------------------------
    def load_points(self, points: Mapping[str, int]) -> None:
        self.reset()
        for label, value in points.items():
            for style in LearningStyle:
                if style.value == str(label).lower():
                    self._points[style] = max(0, int(value))
                    break

    def to_points(self) -> Dict[str, int]:
        return {style.value: self._points[style] for style in LearningStyle}

    @classmethod
    def from_points(cls, points: Optional[Mapping[str, int]]) -> "LearningStyleClassifier":
        return cls(points)
