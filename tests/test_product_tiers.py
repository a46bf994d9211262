import unittest

import requests

from barback.config import Settings
from barback.data_sources.product_tiers import (
    BarcodeLookupTier,
    CocktailDbTier,
    OpenFoodFactsTier,
    UpcItemDbTier,
    build_default_tiers,
)
from barback.domain import ProductSource
from barback.errors import MalformedUpstreamResponse, ProviderUnavailable


class DummyResp:
    def __init__(self, payload, status_code=200):
        self._payload = payload
        self.status_code = status_code

    def json(self):
        if isinstance(self._payload, Exception):
            raise self._payload
        return self._payload


class FakeSession:
    def __init__(self, resp=None, exc=None):
        self.resp = resp
        self.exc = exc
        self.calls = []

    def request(self, method, url, timeout=None, **kwargs):
        self.calls.append({"method": method, "url": url, "timeout": timeout, **kwargs})
        if self.exc is not None:
            raise self.exc
        return self.resp


class TestOpenFoodFactsTier(unittest.TestCase):
    def test_parses_product(self):
        payload = {
            "status": 1,
            "product": {
                "product_name": "Corona Extra",
                "brands": "Corona, Grupo Modelo",
                "categories": "Beverages, Beers",
                "image_url": "https://img.test/corona.jpg",
            },
        }
        session = FakeSession(DummyResp(payload))
        tier = OpenFoodFactsTier("https://off.test", session=session)

        info = tier.resolve("7501064191459")

        self.assertEqual(info.name, "Corona Extra")
        self.assertEqual(info.brand, "Corona")
        self.assertEqual(info.category, "Beverages")
        self.assertEqual(info.image, "https://img.test/corona.jpg")
        self.assertEqual(info.source, ProductSource.OPENFOODFACTS)
        self.assertEqual(session.calls[0]["url"], "https://off.test/api/v0/product/7501064191459.json")

    def test_status_zero_is_a_miss(self):
        tier = OpenFoodFactsTier("https://off.test", session=FakeSession(DummyResp({"status": 0})))
        self.assertIsNone(tier.resolve("123456789012"))

    def test_missing_product_body_is_malformed(self):
        tier = OpenFoodFactsTier("https://off.test", session=FakeSession(DummyResp({"status": 1})))
        with self.assertRaises(MalformedUpstreamResponse):
            tier.resolve("123456789012")

    def test_non_object_payload_is_malformed(self):
        tier = OpenFoodFactsTier("https://off.test", session=FakeSession(DummyResp(["unexpected"])))
        with self.assertRaises(MalformedUpstreamResponse):
            tier.resolve("123456789012")

    def test_invalid_json_is_malformed(self):
        tier = OpenFoodFactsTier("https://off.test", session=FakeSession(DummyResp(ValueError("html"))))
        with self.assertRaises(MalformedUpstreamResponse):
            tier.resolve("123456789012")

    def test_network_error_is_unavailable(self):
        tier = OpenFoodFactsTier("https://off.test", session=FakeSession(exc=requests.Timeout("slow")))
        with self.assertRaises(ProviderUnavailable):
            tier.resolve("123456789012")

    def test_error_status_is_unavailable(self):
        tier = OpenFoodFactsTier("https://off.test", session=FakeSession(DummyResp({}, status_code=503)))
        with self.assertRaises(ProviderUnavailable) as ctx:
            tier.resolve("123456789012")
        self.assertNotIsInstance(ctx.exception, MalformedUpstreamResponse)


class TestUpcItemDbTier(unittest.TestCase):
    def test_parses_first_item(self):
        payload = {
            "code": "OK",
            "items": [
                {"title": "Tito's Vodka 750ml", "brand": "Tito's", "category": "Spirits", "images": ["a.jpg", "b.jpg"]},
                {"title": "ignored"},
            ],
        }
        session = FakeSession(DummyResp(payload))
        info = UpcItemDbTier("https://upc.test", session=session).resolve("619947000020")

        self.assertEqual(info.name, "Tito's Vodka 750ml")
        self.assertEqual(info.brand, "Tito's")
        self.assertEqual(info.image, "a.jpg")
        self.assertEqual(info.source, ProductSource.UPCITEMDB)
        self.assertEqual(session.calls[0]["params"], {"upc": "619947000020"})

    def test_empty_items_is_a_miss(self):
        tier = UpcItemDbTier("https://upc.test", session=FakeSession(DummyResp({"code": "OK", "items": []})))
        self.assertIsNone(tier.resolve("619947000020"))

    def test_non_ok_code_is_a_miss(self):
        tier = UpcItemDbTier("https://upc.test", session=FakeSession(DummyResp({"code": "INVALID_UPC"})))
        self.assertIsNone(tier.resolve("619947000020"))


class TestBarcodeLookupTier(unittest.TestCase):
    def test_skipped_without_key(self):
        tier = BarcodeLookupTier("https://bl.test", None, session=FakeSession())
        self.assertFalse(tier.supports("619947000020"))

    def test_parses_product_and_sends_key(self):
        payload = {"products": [{"title": "Jameson", "brand": "Jameson", "category": "Whiskey", "images": ["j.png"]}]}
        session = FakeSession(DummyResp(payload))
        tier = BarcodeLookupTier("https://bl.test", "k123", session=session)

        self.assertTrue(tier.supports("080432400432"))
        info = tier.resolve("080432400432")

        self.assertEqual(info.name, "Jameson")
        self.assertEqual(info.source, ProductSource.BARCODELOOKUP)
        self.assertEqual(session.calls[0]["params"]["key"], "k123")
        self.assertEqual(session.calls[0]["params"]["barcode"], "080432400432")

    def test_network_error_does_not_expose_api_key(self):
        exc = requests.ConnectionError("Max retries exceeded with url: /v3/products?barcode=080432400432&key=k123")
        tier = BarcodeLookupTier("https://bl.test", "k123", session=FakeSession(exc=exc))

        with self.assertLogs("barback.data_sources.base", level="WARNING") as logs:
            with self.assertRaises(ProviderUnavailable) as ctx:
                tier.resolve("080432400432")

        self.assertNotIn("k123", str(ctx.exception))
        for record in logs.records:
            self.assertNotIn("k123", " ".join(str(v) for v in vars(record).values()))

    def test_no_products_is_a_miss(self):
        tier = BarcodeLookupTier("https://bl.test", "k", session=FakeSession(DummyResp({"products": []})))
        self.assertIsNone(tier.resolve("080432400432"))


class TestCocktailDbTier(unittest.TestCase):
    def test_requires_eight_digits(self):
        tier = CocktailDbTier("https://cdb.test", session=FakeSession())
        self.assertFalse(tier.supports("1234567"))
        self.assertTrue(tier.supports("12345678"))

    def test_searches_last_four_digits(self):
        payload = {"drinks": [{"strDrink": "Margarita", "strCategory": "Cocktail", "strDrinkThumb": "m.jpg"}]}
        session = FakeSession(DummyResp(payload))
        info = CocktailDbTier("https://cdb.test", session=session).resolve("000000004321")

        self.assertEqual(session.calls[0]["params"], {"s": "4321"})
        self.assertEqual(info.name, "Margarita")
        self.assertIsNone(info.brand)
        self.assertEqual(info.source, ProductSource.COCKTAILDB)

    def test_null_drinks_is_a_miss(self):
        tier = CocktailDbTier("https://cdb.test", session=FakeSession(DummyResp({"drinks": None})))
        self.assertIsNone(tier.resolve("000000004321"))


class TestBuildDefaultTiers(unittest.TestCase):
    def test_priority_order_and_shared_session(self):
        session = FakeSession()
        tiers = build_default_tiers(Settings(barcode_lookup_api_key="k"), session=session)

        self.assertEqual(
            [t.name for t in tiers],
            ["openfoodfacts", "upcitemdb", "barcodelookup", "cocktaildb"],
        )
        self.assertTrue(all(t.session is session for t in tiers))
        self.assertTrue(tiers[2].supports("080432400432"))


if __name__ == "__main__":
    unittest.main()
