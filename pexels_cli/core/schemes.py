"""
Organization schemes: the built-in keyword tables, the duration buckets, and
caller-supplied custom rules.

Rule sets are frozen once built, so concurrent organization runs can share them.
"""

from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum
from types import MappingProxyType
from typing import Optional, Union

from pexels_cli.exceptions import InvalidSchemeError
from pexels_cli.models.records import AssetRecord


class Scheme(str, Enum):
    EMOTION = "emotion"
    ENERGY = "energy"
    COLOR = "color"
    DURATION = "duration"
    CUSTOM = "custom"


@dataclass(frozen=True)
class KeywordRules:
    """Ordered ``(category, keywords)`` pairs scored against a video's tags."""

    name: str
    categories: tuple[tuple[str, tuple[str, ...]], ...]

    @classmethod
    def from_mapping(cls, name: str, rules: Mapping[str, list[str]]) -> "KeywordRules":
        return cls(
            name=name,
            categories=tuple(
                (category, tuple(keywords)) for category, keywords in rules.items()
            ),
        )

    def as_dict(self) -> dict[str, list[str]]:
        return {category: list(keywords) for category, keywords in self.categories}

    def classify(self, record: AssetRecord) -> Optional[str]:
        """
        Picks the category whose keywords occur most often in the joined tags.

        A keyword scores one point if it is a substring of the lowercase,
        space-joined tag string. Ties go to the category listed first; a video
        that scores zero everywhere gets no category.
        """
        tag_text = " ".join(record.pexels_metadata.tags).lower()
        best_category, best_score = None, 0
        for category, keywords in self.categories:
            score = sum(1 for keyword in keywords if keyword.lower() in tag_text)
            if score > best_score:
                best_category, best_score = category, score
        return best_category


@dataclass(frozen=True)
class DurationRules:
    """Buckets videos by length: short, medium or long."""

    name: str = Scheme.DURATION.value
    short_max: float = 15
    medium_max: float = 45

    def as_dict(self) -> dict[str, list[str]]:
        return {
            "short": [f"<= {self.short_max:g}s"],
            "medium": [f"<= {self.medium_max:g}s"],
            "long": [f"> {self.medium_max:g}s"],
        }

    def classify(self, record: AssetRecord) -> str:
        duration = record.pexels_metadata.duration
        if duration <= self.short_max:
            return "short"
        if duration <= self.medium_max:
            return "medium"
        return "long"


RuleSet = Union[KeywordRules, DurationRules]

BUILTIN_RULE_SETS: Mapping[Scheme, RuleSet] = MappingProxyType(
    {
        Scheme.EMOTION: KeywordRules.from_mapping(
            "emotion",
            {
                "calm": ["water", "clouds", "slow", "peaceful", "serene", "gentle", "soft", "quiet"],
                "energetic": ["fast", "bright", "motion", "dynamic", "active", "vibrant", "quick", "rapid"],
                "mysterious": ["dark", "smoke", "shadow", "fog", "night", "mysterious", "abstract", "enigmatic"],
                "happy": ["colorful", "sunny", "playful", "light", "bright", "cheerful", "joyful", "positive"],
                "dramatic": ["storm", "lightning", "intense", "powerful", "dramatic", "bold", "striking"],
            },
        ),
        Scheme.ENERGY: KeywordRules.from_mapping(
            "energy",
            {
                "high": ["fast", "rapid", "quick", "dynamic", "active", "intense", "powerful", "energetic"],
                "medium": ["moderate", "steady", "balanced", "consistent", "regular", "normal"],
                "low": ["slow", "calm", "peaceful", "gentle", "soft", "quiet", "relaxed", "serene"],
            },
        ),
        Scheme.COLOR: KeywordRules.from_mapping(
            "color",
            {
                "warm": ["red", "orange", "yellow", "warm", "sunset", "fire", "golden"],
                "cool": ["blue", "green", "purple", "cool", "ocean", "sky", "ice"],
                "neutral": ["black", "white", "gray", "grey", "monochrome", "neutral"],
                "vibrant": ["colorful", "bright", "vivid", "saturated", "rainbow", "neon"],
            },
        ),
        Scheme.DURATION: DurationRules(),
    }
)


def parse_scheme(name: str) -> Scheme:
    try:
        return Scheme(name.lower())
    except ValueError:
        raise InvalidSchemeError(f"Invalid organization scheme: {name}") from None


def resolve_rule_set(
    scheme: Union[Scheme, str],
    custom_rules: Optional[Mapping[str, list[str]]] = None,
) -> RuleSet:
    """
    Returns the frozen rule set for a scheme.

    Raises:
        InvalidSchemeError: Unknown scheme name, or ``custom`` without rules.
    """
    if not isinstance(scheme, Scheme):
        scheme = parse_scheme(scheme)
    if scheme is Scheme.CUSTOM:
        if not custom_rules:
            raise InvalidSchemeError(
                "Invalid organization scheme: custom (no custom rules supplied)"
            )
        return KeywordRules.from_mapping(Scheme.CUSTOM.value, custom_rules)
    return BUILTIN_RULE_SETS[scheme]


def available_schemes() -> list[str]:
    return [scheme.value for scheme in BUILTIN_RULE_SETS]


def scheme_details(name: str) -> Optional[dict[str, list[str]]]:
    """Keyword table for a built-in scheme, or None if the name is not built in."""
    try:
        scheme = Scheme(name.lower())
    except ValueError:
        return None
    rule_set = BUILTIN_RULE_SETS.get(scheme)
    return rule_set.as_dict() if rule_set else None
