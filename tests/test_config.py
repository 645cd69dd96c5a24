"""Tests for gitlab_client.config."""

import pytest

from gitlab_client.auth import (
    AccessTokenAuthSource,
    JobTokenAuthSource,
    OAuthTokenSource,
    PasswordCredentialsAuthSource,
)
from gitlab_client.config import get_config, get_session, load_env, setup
from gitlab_client.errors import ConfigError

VARS = [
    "GITLAB_URL", "GITLAB_TOKEN", "GITLAB_JOB_TOKEN", "GITLAB_OAUTH_TOKEN",
    "GITLAB_USERNAME", "GITLAB_PASSWORD",
    "CI", "CI_API_V4_URL", "CI_JOB_TOKEN",
    "CI_SERVER_TLS_CA_FILE", "CI_SERVER_TLS_CERT_FILE", "CI_SERVER_TLS_KEY_FILE",
]


@pytest.fixture(autouse=True)
def clean_env(monkeypatch, tmp_path):
    for name in VARS:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)


class TestLoadEnv:
    def test_parses_env_file(self, tmp_path):
        env_file = tmp_path / ".env"
        env_file.write_text("KEY1=value1\nKEY2=value2\n# comment\n\nKEY3=val=ue3\n")
        result = load_env(str(env_file))
        assert result == {"KEY1": "value1", "KEY2": "value2", "KEY3": "val=ue3"}

    def test_returns_empty_when_missing(self, tmp_path):
        assert load_env(str(tmp_path / "nonexistent")) == {}

    def test_defaults_to_cwd(self, tmp_path):
        (tmp_path / ".env").write_text("GITLAB_TOKEN=abc\n")
        assert load_env() == {"GITLAB_TOKEN": "abc"}


class TestGetConfig:
    def test_token_from_env_file(self, tmp_path):
        (tmp_path / ".env").write_text("GITLAB_URL=https://gitlab.example.com\nGITLAB_TOKEN=glpat-1\n")
        assert get_config() == {"url": "https://gitlab.example.com", "auth": "token", "token": "glpat-1"}

    def test_env_file_wins_over_environment(self, monkeypatch, tmp_path):
        monkeypatch.setenv("GITLAB_TOKEN", "from-env")
        (tmp_path / ".env").write_text("GITLAB_TOKEN=from-file\n")
        assert get_config()["token"] == "from-file"

    def test_default_url(self, monkeypatch):
        monkeypatch.setenv("GITLAB_OAUTH_TOKEN", "oauth")
        config = get_config()
        assert config["url"] == "https://gitlab.com/"
        assert config["auth"] == "oauth_token"

    def test_password(self, monkeypatch):
        monkeypatch.setenv("GITLAB_USERNAME", "alice")
        monkeypatch.setenv("GITLAB_PASSWORD", "s3cret")
        config = get_config()
        assert (config["auth"], config["username"], config["password"]) == ("password", "alice", "s3cret")

    def test_ci_job_detection(self, monkeypatch):
        monkeypatch.setenv("CI", "true")
        monkeypatch.setenv("CI_API_V4_URL", "https://gitlab.example.com/api/v4")
        monkeypatch.setenv("CI_JOB_TOKEN", "job-123")
        monkeypatch.setenv("CI_SERVER_TLS_CA_FILE", "/etc/ssl/ca.pem")
        config = get_config()
        assert config == {"url": "https://gitlab.example.com/api/v4", "auth": "job_token",
                          "token": "job-123", "ca_file": "/etc/ssl/ca.pem"}

    def test_explicit_token_wins_over_ci(self, monkeypatch):
        monkeypatch.setenv("CI", "true")
        monkeypatch.setenv("CI_API_V4_URL", "https://gitlab.example.com/api/v4")
        monkeypatch.setenv("CI_JOB_TOKEN", "job-123")
        monkeypatch.setenv("GITLAB_TOKEN", "glpat-1")
        assert get_config()["auth"] == "token"

    def test_ci_requires_ci_true(self, monkeypatch):
        monkeypatch.setenv("CI_API_V4_URL", "https://gitlab.example.com/api/v4")
        monkeypatch.setenv("CI_JOB_TOKEN", "job-123")
        with pytest.raises(ConfigError):
            get_config()

    def test_missing_credentials(self):
        with pytest.raises(ConfigError, match="GITLAB_TOKEN"):
            get_config()

    def test_custom_prefix(self, monkeypatch):
        monkeypatch.setenv("SELFHOSTED_TOKEN", "t")
        assert get_config(prefix="SELFHOSTED")["token"] == "t"


class TestGetSession:
    def test_tls_settings(self):
        session = get_session({"ca_file": "/ca.pem", "client_cert": ("/c.pem", "/k.pem")})
        assert session.verify == "/ca.pem"
        assert session.cert == ("/c.pem", "/k.pem")

    def test_defaults(self):
        assert get_session({}).verify is True


class TestSetup:
    @pytest.mark.parametrize("name,value,source_type", [
        ("GITLAB_TOKEN", "t", AccessTokenAuthSource),
        ("GITLAB_JOB_TOKEN", "t", JobTokenAuthSource),
        ("GITLAB_OAUTH_TOKEN", "t", OAuthTokenSource),
    ])
    def test_auth_source_by_config(self, monkeypatch, name, value, source_type):
        monkeypatch.setenv("GITLAB_URL", "https://gitlab.example.com")
        monkeypatch.setenv(name, value)
        client = setup()
        assert isinstance(client.auth_source, source_type)
        assert client.base_url == "https://gitlab.example.com/api/v4/"

    def test_password_client(self, monkeypatch):
        monkeypatch.setenv("GITLAB_USERNAME", "alice")
        monkeypatch.setenv("GITLAB_PASSWORD", "s3cret")
        assert isinstance(setup().auth_source, PasswordCredentialsAuthSource)

    def test_kwargs_passed_through(self, monkeypatch):
        monkeypatch.setenv("GITLAB_TOKEN", "t")
        client = setup(base_url="https://other.example.com", disable_retries=True)
        assert client.base_url == "https://other.example.com/api/v4/"
        assert client.disable_retries
