import pytest

from moltsum import cli
from moltsum.errors import UpstreamError
from tests.helpers import FakeGenerator, make_post, make_snapshot, read_json, write_json


class FakeSession(FakeGenerator):
    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc, tb):
        return None


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ("ANTHROPIC_AUTH_TOKEN", "ANTHROPIC_BASE_URL", "SUMMARY_MODEL", "SUMMARY_BATCH_SIZE",
                 "SUMMARY_BATCH_DELAY_MS", "SUMMARY_MIN_CONTENT_LENGTH", "MOLTSUM_DATA_DIR",
                 "MOLTSUM_CONFIG_PATH"):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def fake_generator(monkeypatch):
    generator = FakeSession()
    monkeypatch.setattr(cli, "build_generator", lambda settings: generator)
    return generator


def run(data_dir, *extra):
    return cli.main(["--data-dir", str(data_dir), "--batch-delay-ms", "0", *extra])


def test_missing_token_exits_with_error(data_dir, fake_generator):
    write_json(data_dir / "latest.json", make_snapshot(hot=[make_post("abc")]))

    assert run(data_dir) == 1
    assert fake_generator.calls == []


def test_nothing_to_do_exits_cleanly(data_dir, monkeypatch, fake_generator):
    monkeypatch.setenv("ANTHROPIC_AUTH_TOKEN", "tok")
    write_json(data_dir / "latest.json", make_snapshot(hot=[make_post("abc", summary="done")]))

    assert run(data_dir) == 0
    assert fake_generator.calls == []


def test_successful_run_writes_summaries(data_dir, monkeypatch, fake_generator):
    monkeypatch.setenv("ANTHROPIC_AUTH_TOKEN", "tok")
    latest = write_json(data_dir / "latest.json", make_snapshot(hot=[make_post("abc")]))

    assert run(data_dir) == 0
    assert read_json(latest)["feeds"]["hot"][0]["title_en"] == "English Title"


def test_partial_failure_still_exits_zero(data_dir, monkeypatch, fake_generator):
    monkeypatch.setenv("ANTHROPIC_AUTH_TOKEN", "tok")
    fake_generator.responses = {"Post b": UpstreamError(500, "boom")}
    write_json(data_dir / "latest.json", make_snapshot(hot=[make_post("a"), make_post("b")]))

    assert run(data_dir) == 0


def test_every_post_failing_exits_one(data_dir, monkeypatch, fake_generator):
    monkeypatch.setenv("ANTHROPIC_AUTH_TOKEN", "tok")
    fake_generator.default = None
    fake_generator.responses = {
        "Post a": UpstreamError(401, "bad token"),
        "Post b": UpstreamError(401, "bad token"),
    }
    write_json(data_dir / "latest.json", make_snapshot(hot=[make_post("a"), make_post("b")]))

    assert run(data_dir) == 1


def test_dry_run_lists_without_token_or_generation(data_dir, fake_generator, capsys):
    latest = write_json(data_dir / "latest.json", make_snapshot(hot=[make_post("abc")]))
    before = latest.read_bytes()

    assert run(data_dir, "--dry-run") == 0

    assert fake_generator.calls == []
    assert latest.read_bytes() == before
    assert "abc" in capsys.readouterr().out


def test_limit_caps_the_number_of_posts(data_dir, monkeypatch, fake_generator):
    monkeypatch.setenv("ANTHROPIC_AUTH_TOKEN", "tok")
    write_json(data_dir / "latest.json", make_snapshot(hot=[make_post("a"), make_post("b"), make_post("c")]))

    assert run(data_dir, "--limit", "2") == 0
    assert fake_generator.calls == ["Post a", "Post b"]


def test_min_content_length_flag(data_dir, monkeypatch, fake_generator):
    monkeypatch.setenv("ANTHROPIC_AUTH_TOKEN", "tok")
    write_json(data_dir / "latest.json", make_snapshot(hot=[make_post("a", content="tiny post")]))

    assert run(data_dir, "--min-content-length", "5") == 0
    assert fake_generator.calls == ["Post a"]
