import json
import unittest
from unittest.mock import MagicMock

from gatekeeper.config import Settings
from gatekeeper.errors import UpstreamError
from gatekeeper.generator import (
    ContentGenerator,
    PromptSpec,
    parse_generated,
    strip_code_fences,
)
from gatekeeper.models.gemini import GeminiInvalidResponseException


def _generator(predict, api_key="gemini-key"):
    settings = Settings(_env_file=None, gemini_api_key=api_key, generated_count=3)
    return ContentGenerator(settings, predict=predict)


class SanitationTests(unittest.TestCase):
    def test_strip_code_fences(self):
        self.assertEqual(strip_code_fences('```json\n[{"a": 1}]\n```'), '[{"a": 1}]')
        self.assertEqual(strip_code_fences("```\n[]\n```\n"), "[]")
        self.assertEqual(strip_code_fences('  [{"a": 1}] '), '[{"a": 1}]')
        self.assertEqual(
            strip_code_fences('Here you go:\n```json [{"a": 1}]```\nEnjoy!'), '[{"a": 1}]'
        )

    def test_parse_prefixes_ids_and_drops_untitled(self):
        text = json.dumps(
            [
                {"id": "lamp", "title": "Salt Lamp", "category": "Air"},
                {"title": "Cooling Pillow!"},
                {"id": "gen-mat", "title": "Yoga Mat", "category": None},
                {"id": "nameless"},
                "not an object",
            ]
        )

        products = parse_generated(text)

        self.assertEqual(
            [p["id"] for p in products], ["gen-lamp", "gen-cooling-pillow", "gen-mat"]
        )
        self.assertEqual(products[2]["category"], "")
        self.assertEqual(products[0]["buy_link"], "")

    def test_parse_accepts_wrapped_products(self):
        text = '```json\n{"products": [{"title": "Tea"}]}\n```'
        self.assertEqual(parse_generated(text)[0]["id"], "gen-tea")

    def test_parse_finds_fenced_block_inside_prose(self):
        text = 'Here you go:\n```json\n[{"title": "Tea"}]\n```'
        self.assertEqual(parse_generated(text)[0]["id"], "gen-tea")

    def test_parse_respects_limit(self):
        text = json.dumps([{"title": f"Item {i}"} for i in range(5)])
        self.assertEqual(len(parse_generated(text, limit=3)), 3)


class ContentGeneratorTests(unittest.TestCase):
    def test_generated_products(self):
        predict = MagicMock(
            return_value='```json\n[{"id": "mist", "title": "Mist Diffuser"}]\n```'
        )

        result = _generator(predict).generate(PromptSpec(count=2, theme="calm"))

        self.assertFalse(result.fallback)
        self.assertEqual([p["id"] for p in result.products], ["gen-mist"])
        prompt = predict.call_args.args[0]
        self.assertIn("Propose 2 new products", prompt)
        self.assertIn("calm", prompt)
        self.assertEqual(predict.call_args.kwargs["api_key"], "gemini-key")

    def test_unparseable_output_falls_back(self):
        for text in ("Sure! Here are some products.", "[]", '{"items": 1}'):
            result = _generator(MagicMock(return_value=text)).generate()
            self.assertTrue(result.fallback)
            self.assertEqual(
                [p["id"] for p in result.products], ["fallback-001", "fallback-002"]
            )

    def test_empty_response_falls_back(self):
        predict = MagicMock(side_effect=GeminiInvalidResponseException())
        self.assertTrue(_generator(predict).generate().fallback)

    def test_missing_api_key_falls_back_without_calling(self):
        predict = MagicMock()
        result = _generator(predict, api_key=None).generate()
        self.assertTrue(result.fallback)
        predict.assert_not_called()

    def test_upstream_failure_propagates(self):
        predict = MagicMock(side_effect=UpstreamError("quota", upstream_status=429))
        with self.assertRaises(UpstreamError):
            _generator(predict).generate()

    def test_fallback_products_are_copies(self):
        first = _generator(None, api_key=None).generate()
        first.products[0]["title"] = "changed"
        second = _generator(None, api_key=None).generate()
        self.assertNotEqual(second.products[0]["title"], "changed")


if __name__ == "__main__":
    unittest.main()
