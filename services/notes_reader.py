from typing import Optional

from errors import DecodeFailure
from interfaces.analysisModels import NarrativeNotes
from interfaces.productModels import NotesFormat, ProductRecord
from logger_manager import log_debug, log_warning
from services.response_decoder import parse_analysis_payload, validate_analysis
from utils.analysis_utils import LEGACY_JSON_MARKER, extract_legacy_json
from utils.narrative_utils import narrative_from_analysis, parse_narrative


def _from_json(text: str) -> NarrativeNotes:
    payload = parse_analysis_payload(text)
    return narrative_from_analysis(validate_analysis(payload))


def parse_user_notes(notes: Optional[str], notes_format: Optional[NotesFormat] = None) -> NarrativeNotes:
    """Decode stored notes with the decoder their format tag names.

    Untagged notes from older records are sniffed for the legacy JSON
    marker. A JSON block that no longer decodes falls back to the narrative
    grammar. Never raises.
    """
    if not notes:
        return NarrativeNotes()

    if notes_format == NotesFormat.PLAIN:
        return NarrativeNotes(summary=notes.strip() or NarrativeNotes().summary)

    json_text = None
    if notes_format == NotesFormat.JSON:
        json_text = extract_legacy_json(notes) or notes
    elif notes_format is None and LEGACY_JSON_MARKER in notes:
        json_text = extract_legacy_json(notes)

    if json_text:
        try:
            return _from_json(json_text)
        except DecodeFailure as e:
            log_warning(f"Stored JSON notes could not be decoded, using narrative parsing: {e.message}")

    log_debug("Using narrative parsing for notes")
    return parse_narrative(notes)


def read_product_notes(product: ProductRecord) -> NarrativeNotes:
    return parse_user_notes(product.user_notes, product.notes_format)
