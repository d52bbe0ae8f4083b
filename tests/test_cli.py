import io
import sys
import tempfile
import unittest
from contextlib import redirect_stderr
from pathlib import Path
from unittest.mock import patch

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from rfa import cli  # noqa: E402


class TestCli(unittest.TestCase):
    def test_build_server_config_defaults(self):
        with tempfile.TemporaryDirectory() as tempdir:
            args = cli.parse_serve_args(["--repo", tempdir])
            config = cli.build_server_config(args)
        self.assertEqual(config.repo, Path(tempdir).resolve())
        self.assertIsNone(config.port)
        self.assertTrue(config.open_browser)
        self.assertEqual(config.output_dir, Path("rfa"))
        self.assertEqual(config.ignore_config.patterns, ())

    def test_build_server_config_reads_repo_ignore_file(self):
        with tempfile.TemporaryDirectory() as tempdir:
            (Path(tempdir) / ".rfaignore").write_text("dist/\n", encoding="utf-8")
            args = cli.parse_serve_args(["--repo", tempdir, "--no-open", "--port", "4100"])
            config = cli.build_server_config(args)
        self.assertFalse(config.open_browser)
        self.assertEqual(config.port, 4100)
        self.assertEqual(config.ignore_config.pathspec_excludes, (":(exclude,glob,top)dist/**",))
        self.assertEqual(config.ignore_config.exclude_file, Path(tempdir).resolve() / ".rfaignore")

    def test_main_dispatches_serve(self):
        with patch.object(cli, "serve", return_value=0) as serve:
            with tempfile.TemporaryDirectory() as tempdir:
                code = cli.main(["serve", "--repo", tempdir, "--no-open"])
        self.assertEqual(code, 0)
        config = serve.call_args.args[0]
        self.assertFalse(config.open_browser)

    def test_run_serve_reports_server_errors(self):
        stderr = io.StringIO()
        with patch.object(cli, "serve", side_effect=RuntimeError("No free port found in range 4000-4099")):
            with tempfile.TemporaryDirectory() as tempdir, redirect_stderr(stderr):
                code = cli.run_serve(["--repo", tempdir, "--no-open"])
        self.assertEqual(code, 1)
        self.assertIn("[error] No free port found", stderr.getvalue())


if __name__ == "__main__":
    unittest.main()
