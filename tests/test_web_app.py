from __future__ import annotations

import hashlib
import importlib.util
import unittest
from pathlib import Path


ROOT = Path(__file__).resolve().parents[1]
APP_PATH = ROOT / "web" / "app.py"


def load_app_module():
    spec = importlib.util.spec_from_file_location("payments_recon_web_app", APP_PATH)
    module = importlib.util.module_from_spec(spec)
    assert spec.loader is not None
    spec.loader.exec_module(module)
    return module


class UploadDigestTests(unittest.TestCase):
    @classmethod
    def setUpClass(cls):
        cls.app = load_app_module()

    def test_first_upload_is_ingested(self):
        data = b"paymentId,payer\n1001,Acme\n"
        self.assertEqual(self.app.new_upload_digest(data, None), hashlib.sha256(data).hexdigest())

    def test_same_bytes_are_not_ingested_again(self):
        data = b"paymentId,payer\n1001,Acme\n"
        previous = self.app.new_upload_digest(data, None)
        self.assertIsNone(self.app.new_upload_digest(data, previous))

    def test_different_file_under_the_same_name_is_ingested(self):
        first = self.app.new_upload_digest(b"paymentId,payer\n1001,Acme\n", None)
        second = self.app.new_upload_digest(b"paymentId,payer\n1002,Beta\n", first)
        self.assertIsNotNone(second)
        self.assertNotEqual(first, second)

    def test_no_upload_means_nothing_to_ingest(self):
        self.assertIsNone(self.app.new_upload_digest(None, "abc"))

    def test_app_imports_the_installed_package(self):
        self.assertNotIn("sys.path", APP_PATH.read_text(encoding="utf-8"))


if __name__ == "__main__":
    unittest.main()
