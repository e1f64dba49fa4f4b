"""
Free-text glaze ingredient parsing.

Turns quick typed or dictated entries into composition lines:

    "10 china clay 20 potash feldspar 10 iron oxide"
    "China clay 10, Potash Feldspar 20"
    "ten china clay twenty five whiting"

Pure functions; the result feeds ``rules.normalize_composition``.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

# Totals above this are almost certainly a typo (e.g. "100" for "10.0")
MAX_REASONABLE_TOTAL = 200

FORMAT_HINT = (
    'Use format like "10 china clay 20 potash feldspar" '
    'or "china clay 10 potash feldspar 20"'
)

SPOKEN_NUMBERS: Dict[str, int] = {
    "zero": 0, "one": 1, "two": 2, "three": 3, "four": 4, "five": 5,
    "six": 6, "seven": 7, "eight": 8, "nine": 9, "ten": 10,
    "eleven": 11, "twelve": 12, "thirteen": 13, "fourteen": 14, "fifteen": 15,
    "sixteen": 16, "seventeen": 17, "eighteen": 18, "nineteen": 19, "twenty": 20,
    "thirty": 30, "forty": 40, "fifty": 50, "sixty": 60, "seventy": 70,
    "eighty": 80, "ninety": 90, "hundred": 100,
}

MATERIAL_ALIASES: Dict[str, str] = {
    "china clay": "China Clay",
    "kaolin": "China Clay",
    "ball clay": "Ball Clay",
    "potash feldspar": "Potash Feldspar",
    "k feldspar": "Potash Feldspar",
    "soda feldspar": "Soda Feldspar",
    "na feldspar": "Soda Feldspar",
    "iron oxide": "Iron Oxide",
    "red iron oxide": "Iron Oxide",
    "fe2o3": "Iron Oxide",
    "calcium carbonate": "Calcium Carbonate",
    "whiting": "Calcium Carbonate",
    "caco3": "Calcium Carbonate",
    "silica": "Silica",
    "quartz": "Silica",
    "sio2": "Silica",
    "alumina": "Alumina",
    "al2o3": "Alumina",
    "zinc oxide": "Zinc Oxide",
    "zno": "Zinc Oxide",
    "titanium dioxide": "Titanium Dioxide",
    "tio2": "Titanium Dioxide",
    "rutile": "Titanium Dioxide",
    "tin oxide": "Tin Oxide",
    "sno2": "Tin Oxide",
    "copper carbonate": "Copper Carbonate",
    "cobalt carbonate": "Cobalt Carbonate",
    "chrome oxide": "Chrome Oxide",
    "cr2o3": "Chrome Oxide",
    "manganese dioxide": "Manganese Dioxide",
    "mno2": "Manganese Dioxide",
    "nickel oxide": "Nickel Oxide",
    "nio": "Nickel Oxide",
    "vanadium pentoxide": "Vanadium Pentoxide",
    "v2o5": "Vanadium Pentoxide",
}

_LEADING_NUMBER = re.compile(r"[+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?")
_SEPARATORS = re.compile(r"[\s,]+")
_PLURALS = (
    (re.compile(r"\b(?:oxide|oxides)\b"), "oxide"),
    (re.compile(r"\b(?:carbonate|carbonates)\b"), "carbonate"),
    (re.compile(r"\b(?:feldspar|feldspars)\b"), "feldspar"),
    (re.compile(r"\b(?:clay|clays)\b"), "clay"),
)

# Name words collected before a trailing amount, e.g. "red iron oxide 2"
_MAX_NAME_WORDS = 3


@dataclass
class ParsedIngredient:
    name: str
    percentage: float

    def to_dict(self) -> Dict[str, object]:
        return {"name": self.name, "percentage": self.percentage}


@dataclass
class ParseResult:
    ingredients: List[ParsedIngredient] = field(default_factory=list)
    is_valid: bool = False
    error: Optional[str] = None

    @property
    def total_percentage(self) -> float:
        return sum(ingredient.percentage for ingredient in self.ingredients)

    def to_composition(self) -> List[Dict[str, object]]:
        """Composition lines with catalogue-style material names."""
        return [
            {"name": suggest_ingredient_name(i.name), "percentage": i.percentage}
            for i in self.ingredients
        ]


def _numeric(token: str) -> Optional[float]:
    """Leading decimal number of ``token`` ("10", "12.5%"), else None."""
    match = _LEADING_NUMBER.match(token)
    if match is None:
        return None
    value = float(match.group())
    return int(value) if value.is_integer() else value


def _spoken(words: List[str]) -> Optional[int]:
    """Spoken amount: "ten" -> 10, "twenty five" -> 25; otherwise None."""
    lowered = [word.lower() for word in words]
    if len(lowered) == 1:
        return SPOKEN_NUMBERS.get(lowered[0])
    if len(lowered) == 2:
        tens = SPOKEN_NUMBERS.get(lowered[0])
        units = SPOKEN_NUMBERS.get(lowered[1])
        if tens is None or units is None:
            return None
        if tens >= 20 and tens % 10 == 0 and units < 10:
            return tens + units
    return None


def _amount_at(tokens: List[str], index: int) -> Tuple[Optional[float], int]:
    """Amount starting at ``tokens[index]`` and how many tokens it spans."""
    if index >= len(tokens):
        return None, 0
    value = _numeric(tokens[index])
    if value is not None:
        return value, 1
    compound = _spoken(tokens[index:index + 2]) if index + 1 < len(tokens) else None
    if compound is not None:
        return compound, 2
    single = _spoken([tokens[index]])
    if single is not None:
        return single, 1
    return None, 0


def _parse_tokens(tokens: List[str]) -> List[ParsedIngredient]:
    ingredients: List[ParsedIngredient] = []
    i = 0

    while i < len(tokens):
        amount, span = _amount_at(tokens, i)
        if amount is not None:
            # "10 china clay": words up to the next amount
            j = i + span
            while j < len(tokens) and _amount_at(tokens, j)[0] is None:
                j += 1
            if j > i + span:
                ingredients.append(ParsedIngredient(" ".join(tokens[i + span:j]), amount))
            i = j
            continue

        # "china clay 10": a short name followed by its amount
        for j in range(i + 1, min(i + 1 + _MAX_NAME_WORDS, len(tokens))):
            amount, span = _amount_at(tokens, j)
            if amount is not None:
                ingredients.append(ParsedIngredient(" ".join(tokens[i:j]), amount))
                i = j + span
                break
        else:
            i += 1

    return ingredients


def parse_glaze_ingredients(text: Optional[str]) -> ParseResult:
    """
    Parse a free-text ingredient list.

    Amounts may come before or after the material name and may be digits or
    spoken numbers. Totals need not reach 100, but a total above
    ``MAX_REASONABLE_TOTAL`` is reported as invalid with the parsed lines
    kept for correction.
    """
    if not text or not text.strip():
        return ParseResult(error="Input cannot be empty")

    tokens = [token for token in _SEPARATORS.split(text.strip()) if token]
    ingredients = _parse_tokens(tokens)
    if not ingredients:
        return ParseResult(error=f"No valid ingredient pairs found. {FORMAT_HINT}")

    result = ParseResult(ingredients=ingredients, is_valid=True)
    if result.total_percentage > MAX_REASONABLE_TOTAL:
        result.is_valid = False
        result.error = (
            f"Total percentage ({result.total_percentage:.1f}%) seems too high. "
            "Please check your values."
        )
    return result


def normalize_ingredient_name(name: str) -> str:
    """Lower-case, single-spaced, singular material words."""
    normalized = " ".join(name.lower().split())
    for pattern, replacement in _PLURALS:
        normalized = pattern.sub(replacement, normalized)
    return normalized


def suggest_ingredient_name(name: str) -> str:
    """Canonical material name for common aliases; unknown names pass through."""
    return MATERIAL_ALIASES.get(normalize_ingredient_name(name), name)
