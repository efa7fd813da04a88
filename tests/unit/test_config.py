"""
Unit tests for configuration.
"""

import dataclasses

import pytest

from dirindex.config import DirectoryConfig, ServerConfig


class TestServerConfig:

    def test_defaults_validate(self):
        ServerConfig().validate()

    def test_port_zero_is_allowed(self):
        ServerConfig(port=0).validate()

    @pytest.mark.parametrize("overrides", [
        {"port": 70000},
        {"min_workers": 0},
        {"min_workers": 8, "max_workers": 4},
        {"queue_size": 0},
        {"buffer_size": 10},
        {"timeout": 0},
        {"log_format": "xml"},
    ])
    def test_invalid(self, overrides):
        with pytest.raises(ValueError):
            ServerConfig(**overrides).validate()

    def test_from_env(self, monkeypatch):
        monkeypatch.setenv("HTTP_HOST", "0.0.0.0")
        monkeypatch.setenv("HTTP_PORT", "9000")
        monkeypatch.setenv("HTTP_LOG_FORMAT", "json")

        config = ServerConfig.from_env()

        assert config.host == "0.0.0.0"
        assert config.port == 9000
        assert config.log_format == "json"


class TestDirectoryConfig:

    def test_defaults(self, monkeypatch, tmp_path):
        monkeypatch.chdir(tmp_path)
        config = DirectoryConfig()

        assert config.root == tmp_path
        assert config.dir_index == ()
        assert config.enable_json is False
        assert config.css == "style"
        assert config.dir_template == "list"
        assert config.template_format == "html"
        assert config.template_handler == "j2"
        assert config.template_dirs == ()

    def test_is_frozen(self, doc_root):
        config = DirectoryConfig(root=doc_root)

        with pytest.raises(dataclasses.FrozenInstanceError):
            config.enable_json = True
        with pytest.raises(TypeError):
            config.render_opts["format"] = "txt"

    def test_single_index_name(self, doc_root):
        assert DirectoryConfig(root=doc_root, dir_index="index.html").dir_index == ("index.html",)
        assert DirectoryConfig(root=doc_root, dir_index=None).dir_index == ()

    def test_render_opts_are_merged(self, doc_root, tmp_path):
        config = DirectoryConfig(root=doc_root, render_opts={"format": "txt", "template_dirs": tmp_path})

        assert config.template_format == "txt"
        assert config.template_handler == "j2"
        assert config.template_dirs == (str(tmp_path),)

    def test_valid(self, doc_root):
        DirectoryConfig(root=doc_root, dir_index=["index.html"], handler=lambda c, p: None).validate()
        DirectoryConfig(root=doc_root / "a b.txt").validate()

    @pytest.mark.parametrize("overrides", [
        {"dir_index": ["../index.html"]},
        {"dir_index": ["sub/index.html"]},
        {"dir_index": [""]},
        {"css": ""},
        {"dir_template": ""},
        {"handler": 42},
        {"render_opts": {"template_dirs": ["/no/such/templates"]}},
    ])
    def test_invalid(self, doc_root, overrides):
        with pytest.raises(ValueError):
            DirectoryConfig(root=doc_root, **overrides).validate()

    def test_missing_root(self, tmp_path):
        with pytest.raises(ValueError, match="does not exist"):
            DirectoryConfig(root=tmp_path / "missing").validate()

    def test_from_env(self, doc_root, monkeypatch, tmp_path):
        monkeypatch.setenv("DIRINDEX_ROOT", str(doc_root))
        monkeypatch.setenv("DIRINDEX_INDEX", "index.html, index.htm")
        monkeypatch.setenv("DIRINDEX_JSON", "yes")
        monkeypatch.setenv("DIRINDEX_TEMPLATE_DIRS", str(tmp_path))

        config = DirectoryConfig.from_env()

        assert config.root == doc_root
        assert config.dir_index == ("index.html", "index.htm")
        assert config.enable_json is True
        assert config.template_dirs == (str(tmp_path),)

    def test_from_env_overrides_win(self, doc_root, monkeypatch):
        monkeypatch.setenv("DIRINDEX_ROOT", "/somewhere/else")
        monkeypatch.delenv("DIRINDEX_JSON", raising=False)

        config = DirectoryConfig.from_env(root=doc_root, css="plain")

        assert config.root == doc_root
        assert config.css == "plain"
        assert config.enable_json is False
