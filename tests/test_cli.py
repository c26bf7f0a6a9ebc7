from __future__ import annotations

import pytest

from site_mirror import cli

from conftest import FakeHttp, page


def test_invalid_root_reports_error_and_elapsed_time(tmp_path, capsys):
    status = cli.main(["not-a-url", "--out", str(tmp_path / "out")])

    captured = capsys.readouterr()
    assert status == 2
    assert "Error:" in captured.err
    assert "Finished in" in captured.out


@pytest.mark.parametrize("flags", [["--depth", "-1"], ["--timeout", "0"]])
def test_rejects_bad_limits(flags, capsys):
    assert cli.main(["http://ex.com/", *flags]) == 2
    assert capsys.readouterr().err


def test_mirror_run(tmp_path, monkeypatch, capsys):
    fake = FakeHttp({"http://ex.com/": page("<html><head></head><p>hi</p></html>")})
    seen = {}

    def fake_client(session, *, timeout_s, user_agent):
        seen["timeout_s"] = timeout_s
        return fake

    monkeypatch.setattr(cli, "HttpClient", fake_client)
    out = tmp_path / "out"

    status = cli.main(["http://ex.com/", "--out", str(out), "--depth", "0", "--timeout", "4"])

    assert status == 0
    assert seen["timeout_s"] == 4.0
    assert fake.calls == ["http://ex.com/"]
    assert (out / "ex.com" / "index.html").is_file()
    assert "Finished in" in capsys.readouterr().out


def test_parser_defaults():
    args = cli.build_parser().parse_args(["http://ex.com/"])
    assert args.out is None
    assert args.depth == 2
    assert args.timeout == 15.0
