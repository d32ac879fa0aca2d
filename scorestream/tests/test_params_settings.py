import pytest

from scorestream.config import ClientSettings
from scorestream.models import SessionContext
from scorestream.params import SessionParameters, parse_url


def test_parse_url_reads_known_keys():
    url = (
        "https://play.example.com/index.html?play_session_uuid=abc-123&variant=2"
        "&input=touch&lang=fr&testName=Reaction%20Test&testRank=3&device=tablet&extra=1"
    )

    params = parse_url(url)

    assert params == SessionParameters(
        session_id="abc-123",
        variant="2",
        input="touch",
        lang="fr",
        test_name="Reaction Test",
        test_rank="3",
        device="tablet",
    )
    assert params.has_required()


def test_missing_keys_become_empty_strings():
    params = parse_url("https://play.example.com/?variant=1")

    assert params.session_id == ""
    assert params.variant == "1"
    assert not params.has_required()


def test_url_without_query_uses_defaults():
    settings = ClientSettings()
    defaults = SessionParameters.defaults(settings)

    assert parse_url("https://play.example.com/", defaults=defaults) == defaults
    assert parse_url(None, defaults=defaults).session_id == "test-session-uuid"
    assert parse_url("") == SessionParameters()


def test_as_query_uses_wire_keys():
    params = SessionParameters(session_id="s", variant="v", input="i", lang="en", test_name="t", test_rank="1", device="d")

    assert params.as_query()["play_session_uuid"] == "s"
    assert params.as_query()["testName"] == "t"


def test_context_requires_session_id():
    context = SessionParameters(session_id="s", variant="v", input="i").to_context("unity-demo")

    assert context.input_mode == "i"
    assert context.game_id == "unity-demo"
    with pytest.raises(ValueError):
        SessionContext(session_id="", variant="v", input_mode="i", game_id="g")


def test_settings_defaults_match_backend():
    settings = ClientSettings()

    assert settings.failed_redirect_url == "https://test.bardtest.gg/failed-play-session"
    assert settings.success_redirect_url == "https://test.bardtest.gg/progressing-play-session"
    assert settings.reconnect_delay_seconds == 5.0
    assert settings.reconnect_max_attempts == 3
    assert settings.redirect_delay_seconds == 2.0
    assert settings.correlated_games == ["aim-gridshot"]


def test_settings_load_from_yaml_file(monkeypatch, tmp_path):
    config = tmp_path / "scorestream.yaml"
    config.write_text(
        "base_url: https://scores.example.com\n"
        "reconnect_max_attempts: 5\n"
        "log_level: debug\n",
        encoding="utf-8",
    )
    monkeypatch.setenv("SCORESTREAM_CONFIG_FILE", str(config))

    settings = ClientSettings()

    assert settings.base_url_str == "https://scores.example.com"
    assert settings.reconnect_max_attempts == 5
    assert settings.log_level == "DEBUG"
    assert settings.config_path == config


def test_settings_reject_non_mapping_file(monkeypatch, tmp_path):
    config = tmp_path / "scorestream.yaml"
    config.write_text("- just\n- a list\n", encoding="utf-8")
    monkeypatch.setenv("SCORESTREAM_CONFIG_FILE", str(config))

    with pytest.raises(ValueError):
        ClientSettings()
