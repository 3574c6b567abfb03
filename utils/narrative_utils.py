"""
Narrative notes: a labeled, human-readable text block holding the analysis
of one product.

Layout: sections separated by a blank line, each starting with its label
line (``SUMMARY:``, ``INGREDIENT EXPLANATIONS:``...). Multi-item sections
separate their items with a blank line as well, so while decoding a block
without a label continues the section opened before it.
"""

import re
from typing import List, Optional

from errors import ValidationFailure
from interfaces.analysisModels import AdditiveAnalysis, AnalysisResponse, IngredientAnalysis, NarrativeNotes
from logger_manager import log_debug

SECTION_DELIMITER = "\n\n"

SUMMARY = "SUMMARY:"
PROCESSING_LEVEL = "PROCESSING LEVEL:"
NATURAL_CONTENT = "NATURAL CONTENT:"
INGREDIENT_EXPLANATIONS = "INGREDIENT EXPLANATIONS:"
CONCERNING_ADDITIVES = "CONCERNING ADDITIVES:"
HEALTHIER_ALTERNATIVES = "HEALTHIER ALTERNATIVES:"
ORIGINAL_LANGUAGE = "ORIGINAL LANGUAGE:"

SECTION_LABELS = (
    SUMMARY,
    PROCESSING_LEVEL,
    NATURAL_CONTENT,
    INGREDIENT_EXPLANATIONS,
    CONCERNING_ADDITIVES,
    HEALTHIER_ALTERNATIVES,
    ORIGINAL_LANGUAGE,
)

CONCERN_MARKER = " - CONCERN: "
REASON_MARKER = "\nReason: "
ADDITIVE_CONCERN_RE = re.compile(r" \(CONCERN: ([A-Za-z]+)\):(?: |$)")
BLANK_LINES_RE = re.compile(r"\n\s*\n")


def _section(label: str, body: str) -> str:
    return f"{label}\n{body}"


def _single_paragraph(text: Optional[str]) -> str:
    """Item text with blank lines collapsed, since a blank line ends an item."""
    return BLANK_LINES_RE.sub("\n", (text or "").strip())


def natural_content_text(percentage: float) -> str:
    return f"Approximately {int(percentage)}% natural ingredients"


def format_ingredient(ingredient: IngredientAnalysis) -> str:
    level = ingredient.concern_level or "none"
    concern_text = f"{CONCERN_MARKER}{level.upper()}" if level != "none" else ""
    reason = _single_paragraph(ingredient.concern_reason)
    reason_text = f"{REASON_MARKER}{reason}" if reason else ""
    return f"{ingredient.name}{concern_text}: {_single_paragraph(ingredient.explanation)}{reason_text}"


def format_additive(additive: AdditiveAnalysis) -> str:
    level = (additive.concern_level or "low").upper()
    return f"{additive.name} (CONCERN: {level}): {_single_paragraph(additive.explanation)}"


def build_user_notes(analysis: AnalysisResponse) -> str:
    """Encode the analysis as narrative notes, skipping absent sections."""
    sections = []

    if analysis.simple_summary:
        sections.append(_section(SUMMARY, analysis.simple_summary))

    if analysis.processing_level:
        sections.append(_section(PROCESSING_LEVEL, analysis.processing_level.title()))

    if analysis.natural_content_percentage is not None:
        sections.append(_section(NATURAL_CONTENT, natural_content_text(analysis.natural_content_percentage)))

    if analysis.ingredients:
        explanations = SECTION_DELIMITER.join(format_ingredient(i) for i in analysis.ingredients)
        sections.append(_section(INGREDIENT_EXPLANATIONS, explanations))

    if analysis.concerning_additives:
        additives = SECTION_DELIMITER.join(format_additive(a) for a in analysis.concerning_additives)
        sections.append(_section(CONCERNING_ADDITIVES, additives))

    if analysis.recommendations_for_healthier_options:
        sections.append(_section(HEALTHIER_ALTERNATIVES, analysis.recommendations_for_healthier_options))

    if analysis.language:
        sections.append(_section(ORIGINAL_LANGUAGE, analysis.language))

    return SECTION_DELIMITER.join(sections)


def parse_ingredient_item(item: str) -> IngredientAnalysis:
    """Parse one 'name[ - CONCERN: LEVEL]: explanation[\\nReason: ...]' entry."""
    reason = None
    if REASON_MARKER in item:
        item, reason = item.split(REASON_MARKER, 1)
        reason = reason.strip() or None

    if CONCERN_MARKER in item:
        name, rest = item.split(CONCERN_MARKER, 1)
        level, separator, explanation = rest.partition(":")
        if not separator:
            raise ValidationFailure(f"No explanation after concern level in '{item[:50]}'")
    else:
        name, separator, explanation = item.partition(":")
        level = "none"
        if not separator:
            raise ValidationFailure(f"No colon in ingredient entry '{item[:50]}'")

    name = name.strip()
    if not name:
        raise ValidationFailure("Ingredient entry without a name")
    return IngredientAnalysis(
        name=name,
        explanation=explanation.strip(),
        concern_level=level.strip().lower() or "none",
        concern_reason=reason,
    )


def parse_additive_item(item: str) -> AdditiveAnalysis:
    """Parse one 'name (CONCERN: LEVEL): explanation' entry."""
    match = ADDITIVE_CONCERN_RE.search(item)
    if not match:
        raise ValidationFailure(f"No concern marker in additive entry '{item[:50]}'")
    name = item[:match.start()].strip()
    if not name:
        raise ValidationFailure("Additive entry without a name")
    return AdditiveAnalysis(
        name=name,
        explanation=item[match.end():].strip(),
        concern_level=match.group(1).lower(),
    )


def _split_sections(notes: str) -> List[tuple]:
    sections = []
    current = None
    for block in notes.replace("\r\n", "\n").split(SECTION_DELIMITER):
        block = block.strip()
        if not block:
            continue
        label = next((label for label in SECTION_LABELS if block.startswith(label)), None)
        if label is not None:
            current = (label, [])
            sections.append(current)
            body = block[len(label):].strip()
            if body:
                current[1].append(body)
        elif current is not None:
            current[1].append(block)
        # text before the first label does not belong to any section
    return sections


def _parse_items(blocks: List[str], parser) -> list:
    items = []
    for block in blocks:
        try:
            items.append(parser(block))
        except ValidationFailure as e:
            log_debug(f"Skipping unparseable narrative item: {e.message}")
    return items


def parse_narrative(notes: Optional[str]) -> NarrativeNotes:
    """Decode narrative notes; never raises, missing sections keep their defaults."""
    result = NarrativeNotes()
    if not notes:
        return result

    for label, blocks in _split_sections(notes):
        text = SECTION_DELIMITER.join(blocks)
        if label == SUMMARY and text:
            result.summary = text
        elif label == PROCESSING_LEVEL and text:
            result.processing_level = text
        elif label == NATURAL_CONTENT and text:
            result.natural_content = text
        elif label == INGREDIENT_EXPLANATIONS:
            result.ingredient_explanations.extend(_parse_items(blocks, parse_ingredient_item))
        elif label == CONCERNING_ADDITIVES:
            result.concerning_additives.extend(_parse_items(blocks, parse_additive_item))
        elif label == HEALTHIER_ALTERNATIVES:
            result.healthier_alternatives = text
        elif label == ORIGINAL_LANGUAGE and text:
            result.language = text

    log_debug(f"Parsed narrative with {len(result.ingredient_explanations)} ingredients "
              f"and {len(result.concerning_additives)} additives")
    return result


def narrative_from_analysis(analysis: AnalysisResponse) -> NarrativeNotes:
    """Same fields as parse_narrative, taken straight from a decoded answer."""
    result = NarrativeNotes(
        ingredient_explanations=list(analysis.ingredients),
        concerning_additives=list(analysis.concerning_additives or []),
        healthier_alternatives=analysis.recommendations_for_healthier_options or "",
        language=analysis.language,
    )
    if analysis.simple_summary:
        result.summary = analysis.simple_summary
    if analysis.processing_level:
        result.processing_level = analysis.processing_level.title()
    if analysis.natural_content_percentage is not None:
        result.natural_content = natural_content_text(analysis.natural_content_percentage)
    return result

