"""
Tests for the command-line interface and option precedence.
"""

import os
import tempfile
import unittest
from pathlib import Path
from unittest.mock import patch

from wp_static.cli import build_parser, main
from wp_static.errors import TransportError


def _clean_env(**values):
    """os.environ without WGS_* variables, plus *values*."""
    env = {k: v for k, v in os.environ.items() if not k.startswith("WGS_")}
    env.update(values)
    return patch.dict(os.environ, env, clear=True)


class TestParser(unittest.TestCase):
    def test_subcommand_required(self):
        with patch("sys.stderr"):
            with self.assertRaises(SystemExit):
                build_parser().parse_args([])

    def test_unset_flags_are_none(self):
        args = build_parser().parse_args(["scrape"])
        for name in ("url", "output_dir", "replace", "parallel", "check_head",
                     "images", "verify_ssl", "progress", "headers"):
            self.assertIsNone(getattr(args, name), name)


class TestScrapeCommand(unittest.TestCase):
    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.root = Path(self._tmp.name)
        patcher = patch("wp_static.cli.Crawler")
        self.crawler_cls = patcher.start()
        self.addCleanup(patcher.stop)

    def tearDown(self):
        self._tmp.cleanup()

    def _config(self):
        return self.crawler_cls.call_args.args[0]

    def test_flags(self):
        with _clean_env():
            rc = main([
                "scrape", "--url", "https://example.com/", "--dir", str(self.root),
                "--replace-url", "https://static.example.org", "--parallel",
                "--workers", "3", "--no-check-head", "--no-images",
                "--extra-page", "/a/", "--extra-page", "/b/",
                "--header", "X-Token: abc", "--delay", "0.5", "--no-progress",
            ])
        self.assertEqual(rc, 0)
        cfg = self._config()
        self.assertEqual(cfg.url, "https://example.com/")
        self.assertEqual(cfg.output_dir, self.root)
        self.assertEqual(cfg.replace_url, "https://static.example.org")
        self.assertTrue(cfg.parallel)
        self.assertEqual(cfg.workers, 3)
        self.assertFalse(cfg.check_head)
        self.assertFalse(cfg.images)
        self.assertEqual(cfg.extra_pages, ("/a/", "/b/"))
        self.assertEqual(dict(cfg.headers), {"X-Token": "abc"})
        self.assertEqual(cfg.delay, 0.5)
        self.assertFalse(cfg.progress)
        self.crawler_cls.return_value.run.assert_called_once()

    def test_precedence_flag_env_file(self):
        cfg_file = self.root / "wp-static.yaml"
        cfg_file.write_text(
            "scrape:\n"
            "  url: https://file.example.com/\n"
            f"  dir: {self.root / 'from-file'}\n"
            "  replace-url: https://file.static\n"
            "  workers: 2\n"
            "  headers:\n"
            "    X-From: file\n",
            encoding="utf-8",
        )
        with _clean_env(WGS_REPLACE_URL="https://env.static", WGS_WORKERS="5"):
            rc = main(["--config", str(cfg_file), "scrape", "--workers", "7",
                       "--no-progress"])
        self.assertEqual(rc, 0)
        cfg = self._config()
        self.assertEqual(cfg.url, "https://file.example.com/")
        self.assertEqual(cfg.output_dir, self.root / "from-file")
        self.assertEqual(cfg.replace_url, "https://env.static")
        self.assertEqual(cfg.workers, 7)
        self.assertEqual(dict(cfg.headers), {"X-From": "file"})

    def test_config_path_from_env(self):
        cfg_file = self.root / "c.yaml"
        cfg_file.write_text("scrape:\n  url: https://env-config.example.com/\n",
                            encoding="utf-8")
        with _clean_env(WGS_CONFIG=str(cfg_file)):
            self.assertEqual(main(["scrape", "--no-progress"]), 0)
        self.assertEqual(self._config().url, "https://env-config.example.com/")

    def test_missing_url_is_fatal(self):
        with _clean_env():
            self.assertEqual(main(["scrape"]), 1)
        self.crawler_cls.assert_not_called()

    def test_bad_header_is_fatal(self):
        with _clean_env():
            rc = main(["scrape", "--url", "https://example.com/", "--header", "nocolon"])
        self.assertEqual(rc, 1)

    def test_invalid_config_file_is_fatal(self):
        bad = self.root / "bad.yaml"
        bad.write_text("scrape: [\n", encoding="utf-8")
        with _clean_env():
            self.assertEqual(main(["--config", str(bad), "scrape"]), 1)

    def test_interrupt(self):
        self.crawler_cls.return_value.run.side_effect = KeyboardInterrupt
        with _clean_env():
            rc = main(["scrape", "--url", "https://example.com/", "--no-progress"])
        self.assertEqual(rc, 130)


class TestAuxCommands(unittest.TestCase):
    def setUp(self):
        patcher = patch("wp_static.cli.build_session")
        self.build_session = patcher.start()
        self.addCleanup(patcher.stop)

    @patch("wp_static.cli.mirror_sitemap")
    def test_sitemap(self, mirror):
        with _clean_env():
            rc = main(["sitemap", "--url", "https://example.com/sitemap_index.xml",
                       "--force", "--replace-url", "https://static.example.org"])
        self.assertEqual(rc, 0)
        session, cfg = mirror.call_args.args
        self.assertIs(session, self.build_session.return_value)
        self.assertTrue(cfg.force)
        self.assertEqual(cfg.file, "sitemap.xml")
        self.assertEqual(cfg.replace_url, "https://static.example.org")

    @patch("wp_static.cli.mirror_robots")
    def test_robots(self, mirror):
        with _clean_env(WGS_ROBOTS_URL="https://example.com/robots.txt"):
            rc = main(["robots", "--file", "robots-live.txt"])
        self.assertEqual(rc, 0)
        cfg = mirror.call_args.args[1]
        self.assertEqual(cfg.url, "https://example.com/robots.txt")
        self.assertEqual(cfg.file, "robots-live.txt")

    @patch("wp_static.cli.mirror_robots")
    def test_robots_fetch_failure(self, mirror):
        mirror.side_effect = TransportError("https://example.com/robots.txt", "HTTP 500", 500)
        with _clean_env():
            rc = main(["robots", "--url", "https://example.com/robots.txt"])
        self.assertEqual(rc, 1)


if __name__ == "__main__":
    unittest.main()
