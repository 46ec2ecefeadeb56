"""Tests for netspeed.targets -- the registry and cache busting."""

import unittest

from netspeed.constants import DOWNLOAD_TARGET_URLS, PING_TARGET_URL
from netspeed.targets import DEFAULT_REGISTRY, Target, TargetKind, TargetRegistry


class TestTarget(unittest.TestCase):
    def test_cache_busted_adds_query(self):
        t = Target("https://cdn.example/file.jpg", TargetKind.DOWNLOAD)
        self.assertEqual(t.cache_busted("123-0"), "https://cdn.example/file.jpg?t=123-0")

    def test_cache_busted_extends_existing_query(self):
        t = Target("https://cdn.example/file.jpg?w=10", TargetKind.DOWNLOAD)
        self.assertEqual(t.cache_busted("5"), "https://cdn.example/file.jpg?w=10&t=5")

    def test_hostname(self):
        t = Target("https://upload.wikimedia.org/a.jpg", TargetKind.DOWNLOAD)
        self.assertEqual(t.hostname, "upload.wikimedia.org")

    def test_immutable(self):
        t = Target("https://a/", TargetKind.LATENCY)
        with self.assertRaises(AttributeError):
            t.url = "https://b/"


class TestTargetRegistry(unittest.TestCase):
    def test_default_registry(self):
        self.assertEqual(DEFAULT_REGISTRY.probe.url, PING_TARGET_URL)
        self.assertEqual(DEFAULT_REGISTRY.probe.kind, TargetKind.LATENCY)
        self.assertEqual(len(DEFAULT_REGISTRY), len(DOWNLOAD_TARGET_URLS))
        self.assertTrue(all(t.kind is TargetKind.DOWNLOAD for t in DEFAULT_REGISTRY.downloads))

    def test_cyclic_indexing(self):
        reg = TargetRegistry("https://p/", ["https://a/", "https://b/", "https://c/"])
        self.assertEqual(reg.target_for(0).url, "https://a/")
        self.assertEqual(reg.target_for(4).url, "https://b/")
        self.assertEqual(reg.next_index(2), 0)
        self.assertEqual(reg.next_index(0), 1)

    def test_empty_download_list_rejected(self):
        with self.assertRaises(ValueError):
            TargetRegistry("https://p/", [])


if __name__ == "__main__":
    unittest.main()
