"""
Unit tests for environment configuration.
"""

import pytest

from core.config import (
    MocoConfig,
    get_http_server_config,
    get_log_level,
    get_moco_config,
    normalize_http_base_path,
)
from core.errors import ConfigError

SUBDOMAIN_MESSAGE = 'MOCO_SUBDOMAIN should only contain the subdomain name'
TTL_MESSAGE = "MOCO_API_CACHE_TIME must be a non-negative integer representing seconds."


class TestGetMocoConfig:

    def test_valid_config(self):
        config = get_moco_config({"MOCO_API_KEY": "test-api-key", "MOCO_SUBDOMAIN": "test-company"})

        assert config == MocoConfig(
            api_key="test-api-key",
            subdomain="test-company",
            base_url="https://test-company.mocoapp.com/api/v1",
            cache_ttl_seconds=300,
        )

    def test_api_key_not_in_repr(self):
        config = get_moco_config({"MOCO_API_KEY": "super-secret-key", "MOCO_SUBDOMAIN": "acme"})
        assert "super-secret-key" not in repr(config)

    def test_custom_cache_ttl(self):
        env = {"MOCO_API_KEY": "k", "MOCO_SUBDOMAIN": "acme", "MOCO_API_CACHE_TIME": "120"}
        assert get_moco_config(env).cache_ttl_seconds == 120

    def test_zero_ttl_disables_cache(self):
        env = {"MOCO_API_KEY": "k", "MOCO_SUBDOMAIN": "acme", "MOCO_API_CACHE_TIME": "0"}
        assert get_moco_config(env).cache_ttl_seconds == 0

    @pytest.mark.parametrize("env, message", [
        ({"MOCO_SUBDOMAIN": "acme"}, "MOCO_API_KEY environment variable is required"),
        ({"MOCO_API_KEY": "k"}, "MOCO_SUBDOMAIN environment variable is required"),
        ({}, "MOCO_API_KEY environment variable is required"),
        ({"MOCO_API_KEY": "", "MOCO_SUBDOMAIN": "acme"}, "MOCO_API_KEY environment variable is required"),
        ({"MOCO_API_KEY": "k", "MOCO_SUBDOMAIN": ""}, "MOCO_SUBDOMAIN environment variable is required"),
    ])
    def test_missing_required_variables(self, env, message):
        with pytest.raises(ConfigError, match=message):
            get_moco_config(env)

    @pytest.mark.parametrize("subdomain", ["test-company.mocoapp.com", "https://test-company"])
    def test_rejects_hostnames_and_urls(self, subdomain):
        with pytest.raises(ConfigError, match=SUBDOMAIN_MESSAGE):
            get_moco_config({"MOCO_API_KEY": "k", "MOCO_SUBDOMAIN": subdomain})

    @pytest.mark.parametrize("subdomain", ["company", "test-company", "company123", "my_company"])
    def test_accepts_valid_subdomains(self, subdomain):
        config = get_moco_config({"MOCO_API_KEY": "k", "MOCO_SUBDOMAIN": subdomain})
        assert config.base_url == f"https://{subdomain}.mocoapp.com/api/v1"

    @pytest.mark.parametrize("raw", ["-5", "abc", "1.5"])
    def test_rejects_invalid_cache_ttl(self, raw):
        env = {"MOCO_API_KEY": "k", "MOCO_SUBDOMAIN": "acme", "MOCO_API_CACHE_TIME": raw}
        with pytest.raises(ConfigError, match=TTL_MESSAGE):
            get_moco_config(env)

    def test_reads_os_environ_by_default(self, monkeypatch):
        monkeypatch.setenv("MOCO_API_KEY", "from-env")
        monkeypatch.setenv("MOCO_SUBDOMAIN", "acme")
        monkeypatch.delenv("MOCO_API_CACHE_TIME", raising=False)

        assert get_moco_config().subdomain == "acme"


class TestHttpServerConfig:

    def test_defaults(self):
        config = get_http_server_config({})
        assert (config.port, config.host, config.path, config.stateless) == (8080, "0.0.0.0", "/sse", True)

    def test_explicit_values(self):
        config = get_http_server_config({
            "MCP_HTTP_PORT": "9000",
            "MCP_HTTP_HOST": " 127.0.0.1 ",
            "MCP_HTTP_PATH": "mcp/",
            "MCP_HTTP_SESSION_STATEFUL": "true",
        })
        assert (config.port, config.host, config.path, config.stateless) == (9000, "127.0.0.1", "/mcp", False)

    def test_port_falls_back_to_port_variable(self):
        assert get_http_server_config({"PORT": "3000"}).port == 3000

    @pytest.mark.parametrize("raw", ["abc", "0", "-1"])
    def test_invalid_port_uses_default(self, raw):
        assert get_http_server_config({"MCP_HTTP_PORT": raw}).port == 8080

    def test_stateful_false_keeps_stateless(self):
        assert get_http_server_config({"MCP_HTTP_SESSION_STATEFUL": "FALSE"}).stateless is True

    def test_allow_lists_default_to_none(self):
        config = get_http_server_config({})
        assert config.allowed_hosts is None
        assert config.allowed_origins is None

    def test_allow_lists_are_trimmed_csv(self):
        config = get_http_server_config({
            "MCP_HTTP_ALLOWED_HOSTS": " localhost, ,mcp.example.com ",
            "MCP_HTTP_ALLOWED_ORIGINS": "https://claude.ai,https://app.example.com",
        })
        assert config.allowed_hosts == ("localhost", "mcp.example.com")
        assert config.allowed_origins == ("https://claude.ai", "https://app.example.com")

    @pytest.mark.parametrize("raw", ["", " , ", ",,"])
    def test_blank_allow_lists_are_none(self, raw):
        config = get_http_server_config({"MCP_HTTP_ALLOWED_HOSTS": raw, "MCP_HTTP_ALLOWED_ORIGINS": raw})
        assert config.allowed_hosts is None
        assert config.allowed_origins is None

    @pytest.mark.parametrize("raw, expected", [
        (None, "/sse"),
        ("", "/sse"),
        ("   ", "/sse"),
        ("/", "/"),
        ("mcp", "/mcp"),
        ("/mcp/", "/mcp"),
        (" /a/b ", "/a/b"),
    ])
    def test_normalize_http_base_path(self, raw, expected):
        assert normalize_http_base_path(raw) == expected


@pytest.mark.parametrize("raw, expected", [
    (None, "info"),
    ("DEBUG", "debug"),
    ("warn", "warn"),
    ("error", "error"),
    ("verbose", "info"),
])
def test_get_log_level(raw, expected):
    env = {} if raw is None else {"LOG_LEVEL": raw}
    assert get_log_level(env) == expected
