import random
import unittest

from interfaces.productModels import NotesFormat, ProductCategory, ScanPreferences
from services.compatibility import calculate_health_compatibility, contains_user_allergens
from services.default_product import COMMON_ALLERGENS, COMMON_INGREDIENTS, generate_default_product
from utils.narrative_utils import parse_narrative
from tests.factories import make_record


class TestGenerateDefaultProduct(unittest.TestCase):

    def test_name_and_brand_from_words(self):
        product = generate_default_product("Crunchy Oat Bars Acme 250g", rng=random.Random(1))

        self.assertEqual(product.name, "Crunchy Oat Bars")
        self.assertEqual(product.brand, "Acme")

    def test_short_text(self):
        two_words = generate_default_product("Oat Bars", rng=random.Random(1))
        self.assertEqual(two_words.name, "Oat Bars")
        self.assertEqual(two_words.brand, "Unknown Brand")

        for text in ("Bars", "", None):
            product = generate_default_product(text, rng=random.Random(1))
            self.assertEqual(product.name, "Unknown Product")
            self.assertEqual(product.brand, "Unknown Brand")

    def test_values_stay_in_range(self):
        for seed in range(50):
            product = generate_default_product("Some scanned label text", rng=random.Random(seed))

            self.assertTrue(40 <= product.health_score <= 75)
            self.assertTrue(5 <= len(product.ingredients) <= 12)
            self.assertTrue(set(product.ingredients) <= set(COMMON_INGREDIENTS))
            self.assertEqual(len(set(product.ingredients)), len(product.ingredients))
            self.assertTrue(set(product.allergens) <= set(COMMON_ALLERGENS))
            self.assertEqual(len(product.barcode), 13)
            self.assertTrue(product.barcode.isdigit())
            self.assertIn(product.category, [c.value for c in ProductCategory])

    def test_same_seed_same_product(self):
        first = generate_default_product("Oat Bars", rng=random.Random(7))
        second = generate_default_product("Oat Bars", rng=random.Random(7))

        self.assertEqual(first.ingredients, second.ingredients)
        self.assertEqual(first.health_score, second.health_score)
        self.assertNotEqual(first.id, second.id)

    def test_notes_list_every_ingredient(self):
        product = generate_default_product("Oat Bars", rng=random.Random(3))

        self.assertEqual(product.notes_format, NotesFormat.NARRATIVE)
        self.assertEqual(product.nutrition_facts.calories, 0)
        parsed = parse_narrative(product.user_notes)
        self.assertEqual([i.name for i in parsed.ingredient_explanations], product.ingredients)
        self.assertEqual(parsed.processing_level, "Moderately")


class TestCompatibility(unittest.TestCase):

    def test_no_preferences_is_fully_compatible(self):
        self.assertEqual(calculate_health_compatibility(make_record(), ScanPreferences()), 100)

    def test_diet_rules(self):
        milk = make_record(ingredients=["Organic Whole Milk", "Vitamin D3"], allergens=[])

        self.assertEqual(calculate_health_compatibility(milk, ScanPreferences(is_vegan=True)), 50)
        self.assertEqual(calculate_health_compatibility(milk, ScanPreferences(is_vegetarian=True)), 100)
        self.assertEqual(
            calculate_health_compatibility(milk, ScanPreferences(is_vegan=True, is_lactose_intolerant=True)), 0
        )

    def test_allergen_alerts(self):
        product = make_record(allergens=["Milk"], ingredients=["Water"])

        self.assertTrue(contains_user_allergens(product, ScanPreferences(allergen_alerts=["milk"])))
        self.assertFalse(contains_user_allergens(product, ScanPreferences(allergen_alerts=["Peanuts"])))
        self.assertFalse(contains_user_allergens(product, ScanPreferences()))
        self.assertEqual(calculate_health_compatibility(product, ScanPreferences(allergen_alerts=["Milk"])), 25)

    def test_score_never_negative(self):
        product = make_record(ingredients=["Milk", "Wheat Flour", "Chicken"], allergens=["Milk"])
        preferences = ScanPreferences(is_vegan=True, is_vegetarian=True, is_gluten_free=True,
                                      is_lactose_intolerant=True, allergen_alerts=["Milk"])
        self.assertEqual(calculate_health_compatibility(product, preferences), 0)


if __name__ == '__main__':
    unittest.main()
