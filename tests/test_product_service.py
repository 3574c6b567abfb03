import asyncio
import unittest
from unittest.mock import AsyncMock, MagicMock, patch

from errors import StorageFailure, TransportFailure
from interfaces.productModels import NotesFormat, ScanPreferences
from services.analysis_request import AnalysisRequest
from services.labelAnalyzerAgent import LabelAnalyzerAgent
from services.product_service import ProductService, ServiceSettings
from tests.factories import analysis_text, make_database

LABEL_TEXT = "Organic Milk Green Farms Ingredients: organic whole milk, vitamin D3"


class ServiceTestCase(unittest.IsolatedAsyncioTestCase):

    def setUp(self):
        self.database = make_database()
        self.analyzer = MagicMock(spec=LabelAnalyzerAgent)
        self.analyzer.analyze = AsyncMock(return_value=analysis_text())
        self.service = ProductService(self.database, analyzer=self.analyzer, settings=ServiceSettings(
            offline_mode=False, keep_raw_payload=False, seed_sample_data=True,
        ))

    def tearDown(self):
        self.database.close()


class TestSubmitScan(ServiceTestCase):

    async def test_successful_analysis_is_stored(self):
        result = await self.service.submit_scan(LABEL_TEXT)

        self.assertEqual(result.source, "analysis")
        self.assertIsNone(result.error_message)
        self.assertEqual(result.product.name, "Organic Milk")
        self.assertEqual(result.product.ingredients, ["Organic Whole Milk", "Vitamin D3"])
        self.assertEqual(self.service.get_product(result.product.id).health_score, 87)

        request = self.analyzer.analyze.await_args.args[0]
        self.assertIsInstance(request, AnalysisRequest)
        self.assertEqual(request.raw_text, LABEL_TEXT)

    async def test_offline_mode_skips_analysis(self):
        result = await self.service.submit_scan(LABEL_TEXT, ScanPreferences(offline_mode=True))

        self.assertEqual(result.source, "fallback")
        self.assertEqual(result.product.name, "Organic Milk Green")
        self.analyzer.analyze.assert_not_awaited()
        self.assertEqual(len(self.service.recent()), 1)

    async def test_offline_setting_applies_to_every_scan(self):
        self.service.settings.offline_mode = True

        result = await self.service.submit_scan(LABEL_TEXT)

        self.assertEqual(result.source, "fallback")
        self.analyzer.analyze.assert_not_awaited()

    async def test_transport_failure_falls_back(self):
        self.analyzer.analyze.side_effect = TransportFailure("Analysis timed out after 30 seconds")

        result = await self.service.submit_scan(LABEL_TEXT)

        self.assertEqual(result.source, "fallback")
        self.assertIsNone(result.error_message)
        self.assertTrue(40 <= result.product.health_score <= 75)
        self.assertIsNotNone(self.service.get_product(result.product.id))

    async def test_service_error_falls_back_with_message(self):
        self.analyzer.analyze.return_value = '{"error": "not a food label"}'

        result = await self.service.submit_scan("a parking ticket")

        self.assertEqual(result.source, "fallback")
        self.assertEqual(result.error_message, "not a food label")
        self.assertEqual(result.product.name, "a parking ticket")

    async def test_malformed_answer_falls_back(self):
        self.analyzer.analyze.return_value = "I could not read that label, sorry."

        result = await self.service.submit_scan(LABEL_TEXT)

        self.assertEqual(result.source, "fallback")
        self.assertIsNone(result.error_message)

    async def test_raw_payload_kept_when_requested(self):
        result = await self.service.submit_scan(LABEL_TEXT, ScanPreferences(keep_raw_payload=True))
        self.assertIn('"productName"', result.product.raw_analysis)

    async def test_storage_failure_returns_unsaved_product(self):
        with patch("services.product_service.ProductRepository.save",
                   side_effect=StorageFailure("disk full")):
            result = await self.service.submit_scan(LABEL_TEXT)

        self.assertEqual(result.product.name, "Organic Milk")
        self.assertEqual(self.service.recent(), [])

    async def test_cancelled_analysis_leaves_store_untouched(self):
        started = asyncio.Event()

        async def slow_analyze(request):
            started.set()
            await asyncio.sleep(10)
            return analysis_text()

        self.analyzer.analyze.side_effect = slow_analyze
        task = asyncio.ensure_future(self.service.submit_scan(LABEL_TEXT))
        await started.wait()
        task.cancel()

        with self.assertRaises(asyncio.CancelledError):
            await task
        self.assertEqual(self.service.recent(), [])


class TestProductOperations(ServiceTestCase):

    def setUp(self):
        super().setUp()
        self.assertEqual(self.service.seed_sample_products(), 3)
        self.milk = self.service.search("Organic Whole Milk")[0]

    def test_seed_only_into_empty_store(self):
        self.assertEqual(self.service.seed_sample_products(), 0)
        self.assertEqual(len(self.service.recent()), 3)

    def test_seed_disabled(self):
        self.service.clear_all()
        self.service.settings.seed_sample_data = False
        self.assertEqual(self.service.seed_sample_products(), 0)

    def test_recent_and_favorites(self):
        self.assertEqual([p.name for p in self.service.recent(2)], ["Organic Whole Milk", "Whole Wheat Bread"])
        self.assertEqual([p.name for p in self.service.favorites()], ["Organic Whole Milk", "Greek Yogurt"])
        # list results come with their relations
        self.assertEqual(self.service.recent(1)[0].allergens, ["Milk"])

    def test_toggle_favorite(self):
        self.assertFalse(self.service.toggle_favorite(self.milk.id))
        self.assertEqual([p.name for p in self.service.favorites()], ["Greek Yogurt"])
        self.assertIsNone(self.service.toggle_favorite("missing"))

    def test_add_note(self):
        self.assertTrue(self.service.add_note(self.milk.id, "Kids love it"))

        product = self.service.get_product(self.milk.id)
        self.assertEqual(product.user_notes, "Kids love it")
        self.assertEqual(product.notes_format, NotesFormat.PLAIN)
        self.assertEqual(self.service.get_notes(self.milk.id).summary, "Kids love it")
        self.assertFalse(self.service.add_note("missing", "text"))

    def test_search(self):
        self.assertEqual([p.name for p in self.service.search("milk")],
                         ["Organic Whole Milk", "Greek Yogurt"])
        self.assertEqual(self.service.search(""), [])

    def test_by_category(self):
        self.assertEqual([p.name for p in self.service.by_category("DAIRY")],
                         ["Organic Whole Milk", "Greek Yogurt"])
        self.assertEqual([p.name for p in self.service.by_category("Bakery")], ["Whole Wheat Bread"])

    def test_get_product(self):
        product = self.service.get_product(self.milk.id)

        self.assertEqual(product.nutrition_facts.serving_size, "240ml")
        self.assertEqual(product.user_notes, "No detailed information available for this product.")
        self.assertIsNone(self.service.get_product("missing"))
        self.assertIsNone(self.service.get_notes("missing"))

    def test_clear_all(self):
        self.service.clear_all()

        self.assertEqual(self.service.recent(), [])
        self.assertIsNone(self.service.get_product(self.milk.id))


if __name__ == '__main__':
    unittest.main()
