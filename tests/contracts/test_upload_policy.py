import unittest

from library_sync.contracts.upload_policy import MAX_UPLOAD_BYTES, evaluate_upload
from library_sync.models import UploadFile


class UploadPolicyTests(unittest.TestCase):
    def test_accepts_pdf_within_limit(self):
        decision = evaluate_upload(UploadFile("guide.pdf", "application/pdf", 1024))
        self.assertTrue(decision.allowed)
        self.assertEqual(decision.reason, "allowed")

    def test_accepts_pdf_exactly_at_limit(self):
        decision = evaluate_upload(UploadFile("big.pdf", "application/pdf", MAX_UPLOAD_BYTES))
        self.assertTrue(decision.allowed)

    def test_rejects_pdf_one_byte_over_limit(self):
        decision = evaluate_upload(UploadFile("big.pdf", "application/pdf", MAX_UPLOAD_BYTES + 1))
        self.assertFalse(decision.allowed)
        self.assertEqual(decision.reason, "too_large")
        self.assertIn("10 MB", decision.message)

    def test_rejects_non_pdf_type(self):
        decision = evaluate_upload(UploadFile("notes.txt", "text/plain", 10))
        self.assertFalse(decision.allowed)
        self.assertEqual(decision.reason, "unsupported_type")

    def test_custom_limit(self):
        decision = evaluate_upload(UploadFile("a.pdf", "application/pdf", 2048), max_bytes=1024)
        self.assertFalse(decision.allowed)
        self.assertEqual(decision.reason, "too_large")


if __name__ == "__main__":
    unittest.main()
