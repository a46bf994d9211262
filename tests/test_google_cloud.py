import unittest

from barback.data_sources.google_cloud import (
    DEMO_BARCODES,
    DEMO_TRANSCRIPTS,
    DemoOcrClient,
    DemoSpeechClient,
    SpeechClient,
    VisionOcrClient,
)
from barback.errors import MalformedUpstreamResponse, ProviderUnavailable
from barback.product_resolver import detect_barcode
from barback.quantity_extractor import extract_quantity_from_text


class DummyResp:
    def __init__(self, payload, status_code=200):
        self._payload = payload
        self.status_code = status_code

    def json(self):
        return self._payload


class FakeSession:
    def __init__(self, resp):
        self.resp = resp
        self.calls = []

    def request(self, method, url, timeout=None, **kwargs):
        self.calls.append({"method": method, "url": url, **kwargs})
        return self.resp


class TestVisionOcrClient(unittest.TestCase):
    def test_returns_first_annotation_and_strips_data_url(self):
        payload = {"responses": [{"textAnnotations": [{"description": "UPC 080660956435\nVODKA"}, {"description": "UPC"}]}]}
        session = FakeSession(DummyResp(payload))
        client = VisionOcrClient("https://vision.test/v1", "key", session=session)

        text = client.detect_text("data:image/jpeg;base64,QUJD")

        self.assertEqual(text, "UPC 080660956435\nVODKA")
        call = session.calls[0]
        self.assertEqual(call["method"], "POST")
        self.assertEqual(call["url"], "https://vision.test/v1/images:annotate")
        self.assertEqual(call["params"], {"key": "key"})
        self.assertEqual(call["json"]["requests"][0]["image"]["content"], "QUJD")
        self.assertEqual(call["json"]["requests"][0]["features"], [{"type": "TEXT_DETECTION"}])

    def test_no_text_returns_empty_string(self):
        client = VisionOcrClient("https://vision.test/v1", "key", session=FakeSession(DummyResp({"responses": [{}]})))
        self.assertEqual(client.detect_text("QUJD"), "")

    def test_error_in_response_is_unavailable(self):
        payload = {"responses": [{"error": {"message": "bad image"}}]}
        client = VisionOcrClient("https://vision.test/v1", "key", session=FakeSession(DummyResp(payload)))
        with self.assertRaises(ProviderUnavailable):
            client.detect_text("QUJD")

    def test_string_error_in_response_is_unavailable(self):
        payload = {"responses": [{"error": "quota exhausted"}]}
        client = VisionOcrClient("https://vision.test/v1", "key", session=FakeSession(DummyResp(payload)))
        with self.assertRaises(ProviderUnavailable) as ctx:
            client.detect_text("QUJD")
        self.assertIn("quota exhausted", str(ctx.exception))

    def test_missing_responses_is_malformed(self):
        client = VisionOcrClient("https://vision.test/v1", "key", session=FakeSession(DummyResp({})))
        with self.assertRaises(MalformedUpstreamResponse):
            client.detect_text("QUJD")


class TestSpeechClient(unittest.TestCase):
    def test_returns_best_alternative(self):
        payload = {"results": [{"alternatives": [{"transcript": "three kegs", "confidence": 0.81}]}]}
        session = FakeSession(DummyResp(payload))
        client = SpeechClient("https://speech.test/v1", "key", session=session)

        self.assertEqual(client.transcribe("data:audio/webm;base64,QUJD"), ("three kegs", 0.81))
        call = session.calls[0]
        self.assertEqual(call["url"], "https://speech.test/v1/speech:recognize")
        self.assertEqual(call["json"]["config"]["encoding"], "WEBM_OPUS")
        self.assertEqual(call["json"]["config"]["sampleRateHertz"], 48000)
        self.assertEqual(call["json"]["audio"]["content"], "QUJD")

    def test_no_results_is_empty_transcript(self):
        client = SpeechClient("https://speech.test/v1", "key", session=FakeSession(DummyResp({})))
        self.assertEqual(client.transcribe("QUJD"), ("", 0.0))

    def test_error_status_is_unavailable(self):
        client = SpeechClient("https://speech.test/v1", "key", session=FakeSession(DummyResp({}, status_code=403)))
        with self.assertRaises(ProviderUnavailable):
            client.transcribe("QUJD")


class TestDemoClients(unittest.TestCase):
    def test_demo_ocr_is_deterministic_and_detectable(self):
        ocr = DemoOcrClient()
        text = ocr.detect_text("some-image")
        self.assertEqual(text, ocr.detect_text("some-image"))
        self.assertIn(detect_barcode(text), DEMO_BARCODES)

    def test_demo_transcripts_extract_the_count_they_state(self):
        counts = [extract_quantity_from_text(t) for t in DEMO_TRANSCRIPTS]
        self.assertEqual(counts, [12, 8, 7, 3, 24])

    def test_demo_speech_is_deterministic(self):
        speech = DemoSpeechClient()
        transcript, confidence = speech.transcribe("clip")
        self.assertIn(transcript, DEMO_TRANSCRIPTS)
        self.assertEqual(speech.transcribe("clip"), (transcript, confidence))
        self.assertEqual(confidence, 0.92)


if __name__ == "__main__":
    unittest.main()
