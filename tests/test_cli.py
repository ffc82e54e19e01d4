"""
Tests for the command-line entry point.
"""

import textwrap

import pytest


APP_SOURCE = textwrap.dedent('''
    from trellis import App

    app = App()

    @app.page("/")
    def home(ui):
        ui.h1("Loaded")
''')


class TestLoadApp:
    def test_load_app(self, tmp_path):
        from trellis.cli import load_app
        from trellis.server import App

        path = tmp_path / "my_app.py"
        path.write_text(APP_SOURCE)

        app = load_app(str(path))

        assert isinstance(app, App)
        assert "/" in app.pages

    def test_missing_file(self, tmp_path):
        from trellis.cli import load_app

        with pytest.raises(FileNotFoundError):
            load_app(str(tmp_path / "nope.py"))

    def test_missing_attribute(self, tmp_path):
        from trellis.cli import load_app

        path = tmp_path / "no_app.py"
        path.write_text("x = 1\n")

        with pytest.raises(LookupError):
            load_app(str(path))


class TestMain:
    def test_main_returns_2_on_load_error(self, tmp_path):
        from trellis.cli import main

        assert main([str(tmp_path / "nope.py")]) == 2

    def test_parser_flags(self):
        from trellis.cli import build_parser

        args = build_parser().parse_args(["app.py", "--port", "9000", "--attr", "site"])

        assert args.path == "app.py"
        assert args.port == 9000
        assert args.attr == "site"
        assert args.host is None
