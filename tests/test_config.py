import os

import yaml

from salat.core.config import DEFAULT_CONFIG, Config


def test_creates_default_config_file(tmp_path):
    config_file = tmp_path / "salat" / "config.yaml"

    config = Config(config_path=str(config_file), watch=False)

    assert config_file.exists()
    assert yaml.safe_load(config_file.read_text())["scraper"]["url"] == DEFAULT_CONFIG["scraper"]["url"]
    assert config.get_section("refresh") == {"time": "06:00", "interval_seconds": 86400}
    assert not config.data["logging"]["file"].startswith("~")


def test_partial_file_is_merged_with_defaults(tmp_path):
    config_file = tmp_path / "config.yaml"
    config_file.write_text(yaml.safe_dump({"refresh": {"time": "05:30"}, "api": {"port": 9000}}))

    config = Config(config_path=str(config_file), watch=False)

    assert config.get_section("refresh") == {"time": "05:30", "interval_seconds": 86400}
    assert config.get_section("api")["port"] == 9000
    assert config.get_section("api")["host"] == "127.0.0.1"
    assert config.get_section("storage") == {"backend": "database"}
    assert config.get_section("missing") == {}


def test_env_vars_are_substituted(tmp_path, monkeypatch):
    monkeypatch.setenv("SALAT_SCRAPE_URL", "https://example.test/times")
    config_file = tmp_path / "config.yaml"
    config_file.write_text(yaml.safe_dump({"scraper": {"url": "${SALAT_SCRAPE_URL}", "location": "$NOPE_NOT_SET"}}))

    config = Config(config_path=str(config_file), watch=False)

    assert config.get_section("scraper")["url"] == "https://example.test/times"
    assert config.get_section("scraper")["location"] == "$NOPE_NOT_SET"


def test_dotenv_file_is_loaded_without_overriding_environment(tmp_path, monkeypatch):
    os.environ.pop("SALAT_TEST_LOCATION", None)
    monkeypatch.setenv("SALAT_TEST_PORT", "7000")
    (tmp_path / ".env").write_text('# local\nSALAT_TEST_LOCATION="Tyre, Lebanon"\nSALAT_TEST_PORT=1234\n')
    config_file = tmp_path / "config.yaml"
    config_file.write_text(yaml.safe_dump({"scraper": {"location": "${SALAT_TEST_LOCATION}"}}))

    config = Config(config_path=str(config_file), watch=False)

    assert config.get_section("scraper")["location"] == "Tyre, Lebanon"
    assert os.environ["SALAT_TEST_PORT"] == "7000"
    os.environ.pop("SALAT_TEST_LOCATION", None)


def test_invalid_reload_keeps_previous_config(tmp_path):
    config_file = tmp_path / "config.yaml"
    config_file.write_text(yaml.safe_dump({"refresh": {"time": "05:30"}}))
    config = Config(config_path=str(config_file), watch=False)
    seen = []
    config.register_change_callback(seen.append)

    config_file.write_text("- just\n- a list\n")
    config.reload()

    assert config.get_section("refresh")["time"] == "05:30"
    assert len(seen) == 1


def test_reload_notifies_callbacks(tmp_path):
    config_file = tmp_path / "config.yaml"
    config_file.write_text(yaml.safe_dump({"refresh": {"time": "05:30"}}))
    config = Config(config_path=str(config_file), watch=False)
    seen = []
    config.register_change_callback(seen.append)

    config_file.write_text(yaml.safe_dump({"refresh": {"time": "04:45"}}))
    config.reload()

    assert seen[0]["refresh"]["time"] == "04:45"
    assert config.get_section("refresh")["time"] == "04:45"
