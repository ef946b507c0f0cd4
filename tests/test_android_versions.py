from avdlaunch import android_versions
from tests import AvdTestCase


class TestAndroidVersions(AvdTestCase):
    def test_get(self):
        version = android_versions.get(29)
        self.assertEqual("10", version.semver)
        self.assertEqual("Q", version.name)
        self.assertEqual(23, android_versions.get("23").api)

    def test_get_unknown(self):
        self.assertIsNone(android_versions.get(99))
        self.assertIsNone(android_versions.get("nope"))
        self.assertIsNone(android_versions.get(None))

    def test_version_strings(self):
        self.assertEqual(29, android_versions.version_string_to_api_level("10"))
        self.assertEqual(29, android_versions.version_string_to_api_level("10.0"))
        self.assertEqual(25, android_versions.version_string_to_api_level("7.1.1"))
        self.assertEqual(20, android_versions.version_string_to_api_level("4.4W"))
        self.assertIsNone(android_versions.version_string_to_api_level("API 29"))

    def test_tables_agree(self):
        for version in android_versions.VERSIONS:
            self.assertEqual(version.api, android_versions.version_string_to_api_level(version.semver))
