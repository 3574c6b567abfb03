import unittest

from errors import ValidationFailure
from interfaces.analysisModels import AdditiveAnalysis, AnalysisResponse, IngredientAnalysis
from interfaces.productModels import NotesFormat
from services.notes_reader import parse_user_notes
from utils.analysis_utils import LEGACY_JSON_MARKER
from utils.narrative_utils import (
    build_user_notes, parse_additive_item, parse_ingredient_item,
    parse_narrative,
)
from tests.factories import analysis_payload, analysis_text


def _analysis(**overrides) -> AnalysisResponse:
    return AnalysisResponse.model_validate(analysis_payload(**overrides))


class TestNarrativeRoundTrip(unittest.TestCase):

    def test_ingredients_survive_round_trip(self):
        ingredients = [
            IngredientAnalysis(name="Water", explanation="Base liquid"),
            IngredientAnalysis(name="Red 40", explanation="Synthetic dye", concern_level="high",
                               concern_reason="Linked to hyperactivity"),
            IngredientAnalysis(name="Salt", explanation="", concern_level="medium"),
            IngredientAnalysis(name="Sugar", explanation="Sweetener", concern_reason="Added sugar"),
        ]
        analysis = AnalysisResponse(ingredients=ingredients)

        parsed = parse_narrative(build_user_notes(analysis))

        self.assertEqual(
            [(i.name, i.explanation, i.concern_level, i.concern_reason) for i in parsed.ingredient_explanations],
            [(i.name, i.explanation, i.concern_level, i.concern_reason) for i in ingredients],
        )

    def test_all_sections_round_trip(self):
        analysis = _analysis(concerningAdditives=[
            {"name": "BHT", "explanation": "Synthetic antioxidant", "concernLevel": "medium"},
            {"name": "Carrageenan", "explanation": "Thickener", "concernLevel": "high"},
        ])

        parsed = parse_narrative(build_user_notes(analysis))

        self.assertEqual(parsed.summary, "Mostly whole milk.")
        self.assertEqual(parsed.processing_level, "Minimally")
        self.assertEqual(parsed.natural_content, "Approximately 90% natural ingredients")
        self.assertEqual(len(parsed.ingredient_explanations), 2)
        self.assertEqual(
            [(a.name, a.explanation, a.concern_level) for a in parsed.concerning_additives],
            [("BHT", "Synthetic antioxidant", "medium"), ("Carrageenan", "Thickener", "high")],
        )
        self.assertEqual(parsed.healthier_alternatives, "Try unsweetened oat milk.")
        self.assertEqual(parsed.language, "English")

    def test_multi_paragraph_item_text_keeps_every_paragraph(self):
        analysis = AnalysisResponse(
            ingredients=[
                IngredientAnalysis(name="Sugar", explanation="Sweet.\n\nAdded for taste", concern_level="low",
                                   concern_reason="High intake\n\n\nraises blood sugar"),
                IngredientAnalysis(name="Salt", explanation="Mineral"),
            ],
            concerning_additives=[
                AdditiveAnalysis(name="BHT", explanation="Antioxidant.\n\nBanned in some countries",
                                 concern_level="medium"),
            ],
        )

        parsed = parse_narrative(build_user_notes(analysis))

        self.assertEqual(
            [(i.name, i.explanation, i.concern_reason) for i in parsed.ingredient_explanations],
            [("Sugar", "Sweet.\nAdded for taste", "High intake\nraises blood sugar"), ("Salt", "Mineral", None)],
        )
        self.assertEqual(
            [(a.name, a.explanation) for a in parsed.concerning_additives],
            [("BHT", "Antioxidant.\nBanned in some countries")],
        )

    def test_absent_sections_are_skipped(self):
        notes = build_user_notes(AnalysisResponse(ingredients=[IngredientAnalysis(name="Water")]))

        self.assertTrue(notes.startswith("INGREDIENT EXPLANATIONS:"))
        self.assertNotIn("SUMMARY:", notes)
        self.assertNotIn("CONCERNING ADDITIVES:", notes)


class TestParseNarrative(unittest.TestCase):

    def test_empty_notes_give_defaults(self):
        for notes in (None, "", "   "):
            parsed = parse_narrative(notes)
            self.assertEqual(parsed.summary, "No summary available")
            self.assertEqual(parsed.processing_level, "Unknown")
            self.assertEqual(parsed.natural_content, "Unknown natural content percentage")
            self.assertEqual(parsed.ingredient_explanations, [])
            self.assertEqual(parsed.concerning_additives, [])

    def test_partial_notes(self):
        parsed = parse_narrative("SUMMARY:\nJust a summary")

        self.assertEqual(parsed.summary, "Just a summary")
        self.assertEqual(parsed.processing_level, "Unknown")
        self.assertEqual(parsed.ingredient_explanations, [])

    def test_unparseable_items_are_skipped(self):
        notes = (
            "INGREDIENT EXPLANATIONS:\nWater: Base liquid\n\nno colon here\n\nSalt: Seasoning\n\n"
            "CONCERNING ADDITIVES:\nBHT without marker\n\nBHA (CONCERN: HIGH): Preservative"
        )

        parsed = parse_narrative(notes)

        self.assertEqual([i.name for i in parsed.ingredient_explanations], ["Water", "Salt"])
        self.assertEqual([a.name for a in parsed.concerning_additives], ["BHA"])

    def test_text_before_first_label_is_ignored(self):
        parsed = parse_narrative("Scanned at the store\n\nSUMMARY:\nCrackers")
        self.assertEqual(parsed.summary, "Crackers")

    def test_windows_line_endings(self):
        parsed = parse_narrative("SUMMARY:\r\nCrackers\r\n\r\nPROCESSING LEVEL:\r\nHighly")
        self.assertEqual(parsed.summary, "Crackers")
        self.assertEqual(parsed.processing_level, "Highly")


class TestItemParsers(unittest.TestCase):

    def test_ingredient_item_with_concern(self):
        item = parse_ingredient_item("Red 40 - CONCERN: HIGH: Synthetic dye\nReason: Hyperactivity")

        self.assertEqual(item.name, "Red 40")
        self.assertEqual(item.explanation, "Synthetic dye")
        self.assertEqual(item.concern_level, "high")
        self.assertEqual(item.concern_reason, "Hyperactivity")

    def test_ingredient_item_errors(self):
        for text in ("no colon", ": missing name", "Red 40 - CONCERN: HIGH"):
            with self.assertRaises(ValidationFailure):
                parse_ingredient_item(text)

    def test_additive_item(self):
        additive = parse_additive_item("Sodium Nitrite (CONCERN: HIGH): Curing agent")
        self.assertEqual(additive, AdditiveAnalysis(name="Sodium Nitrite", explanation="Curing agent",
                                                    concern_level="high"))

    def test_additive_item_errors(self):
        for text in ("BHT: no marker", " (CONCERN: LOW): no name"):
            with self.assertRaises(ValidationFailure):
                parse_additive_item(text)


class TestParseUserNotes(unittest.TestCase):

    def test_plain_notes_become_summary(self):
        parsed = parse_user_notes("Good for sandwiches", NotesFormat.PLAIN)

        self.assertEqual(parsed.summary, "Good for sandwiches")
        self.assertEqual(parsed.ingredient_explanations, [])

    def test_tagged_json_notes(self):
        parsed = parse_user_notes(analysis_text(), NotesFormat.JSON)

        self.assertEqual(parsed.summary, "Mostly whole milk.")
        self.assertEqual(parsed.processing_level, "Minimally")
        self.assertEqual(len(parsed.ingredient_explanations), 2)

    def test_untagged_legacy_json_notes(self):
        notes = f"{LEGACY_JSON_MARKER}\n{analysis_text()}\n```"

        parsed = parse_user_notes(notes)

        self.assertEqual(parsed.summary, "Mostly whole milk.")
        self.assertEqual(parsed.language, "English")

    def test_broken_json_falls_back_to_narrative(self):
        parsed = parse_user_notes(f"{LEGACY_JSON_MARKER}\n{{broken\n```")
        self.assertEqual(parsed.summary, "No summary available")

    def test_narrative_notes(self):
        parsed = parse_user_notes("SUMMARY:\nCrackers", NotesFormat.NARRATIVE)
        self.assertEqual(parsed.summary, "Crackers")


if __name__ == '__main__':
    unittest.main()
