import unittest
from importlib.metadata import PackageNotFoundError, version

from servicenow_webhook.main import VERSION, create_app


class TestVersion(unittest.TestCase):
    def test_version_from_package_metadata(self) -> None:
        try:
            expected = version("alertmanager-webhook-servicenow")
        except PackageNotFoundError:
            self.skipTest("package is not installed")
        self.assertEqual(VERSION, expected)
        self.assertEqual(create_app().version, expected)


if __name__ == "__main__":
    unittest.main()
