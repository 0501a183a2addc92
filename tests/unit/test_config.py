"""
Unit tests for configuration loading and merging.
"""
import pytest
import yaml

from speranto.config import (
    Config,
    DatabaseConfig,
    FileConfig,
    TableConfig,
    find_config_file,
    load_config_file,
    write_config_file,
)
from speranto.core.exceptions import ConfigurationError


class TestConfigFromDict:

    def test_camel_case_keys(self):
        config = Config.from_dict({
            "model": "gpt-4o-mini",
            "provider": "openai",
            "sourceLang": "en",
            "targetLangs": ["es", "fr"],
            "files": {"sourceDir": "./docs", "targetDir": "./docs/[lang]", "useLangCodeAsFilename": True},
        })
        assert config.source_lang == "en"
        assert config.target_langs == ["es", "fr"]
        assert config.files.source_dir == "./docs"
        assert config.files.use_lang_code_as_filename is True

    def test_snake_case_and_comma_list(self):
        config = Config.from_dict({"target_langs": "es, de ,", "temperature": "0.5"})
        assert config.target_langs == ["es", "de"]
        assert config.temperature == 0.5

    def test_legacy_flat_layout(self):
        config = Config.from_dict({"sourceDir": "./i18n", "targetDir": "./i18n"})
        assert config.files == FileConfig(source_dir="./i18n", target_dir="./i18n",
                                          max_strings_per_group=config.files.max_strings_per_group)

    def test_database_section(self):
        config = Config.from_dict({
            "database": {
                "type": "sqlite",
                "connection": "./app.db",
                "translationTableSuffix": "_i18n",
                "tables": [{"name": "posts", "columns": ["title", "body"], "idColumn": "post_id"}],
            }
        })
        assert config.files is None
        assert config.database.translation_table_suffix == "_i18n"
        assert config.database.tables == [TableConfig(name="posts", columns=["title", "body"], id_column="post_id")]

    @pytest.mark.parametrize("database", [
        {"connection": "./app.db"},
        {"type": "sqlite"},
        {"type": "sqlite", "connection": "x.db", "tables": [{"columns": ["a"]}]},
        {"type": "sqlite", "connection": "x.db", "tables": [{"name": "posts", "columns": []}]},
    ])
    def test_invalid_database_section(self, database):
        with pytest.raises(ConfigurationError):
            DatabaseConfig.from_dict(database)

    def test_effective_concurrency(self):
        assert Config(concurrency=5).effective_concurrency == 5
        assert Config(concurrency=5, sequential=True).effective_concurrency == 1
        assert Config(concurrency=0).effective_concurrency == 1


class TestOverrides:

    def test_none_values_do_not_override(self):
        config = Config(model="from-file", temperature=0.7)
        merged = config.with_overrides(model="from-cli", temperature=None)
        assert merged.model == "from-cli"
        assert merged.temperature == 0.7
        assert config.model == "from-file"


class TestConfigFiles:

    def test_explicit_missing_file(self, tmp_path):
        with pytest.raises(ConfigurationError):
            find_config_file(str(tmp_path / "missing.yaml"))

    def test_default_file_lookup(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        assert load_config_file() == {}
        (tmp_path / "speranto.config.yml").write_text("model: m\n", encoding="utf-8")
        assert load_config_file() == {"model": "m"}

    def test_invalid_yaml(self, tmp_path):
        path = tmp_path / "bad.yaml"
        path.write_text("model: [unclosed\n", encoding="utf-8")
        with pytest.raises(ConfigurationError):
            load_config_file(str(path))

    def test_not_a_mapping(self, tmp_path):
        path = tmp_path / "list.yaml"
        path.write_text("- a\n- b\n", encoding="utf-8")
        with pytest.raises(ConfigurationError):
            load_config_file(str(path))

    def test_write_and_reload(self, tmp_path):
        config = Config(
            model="mistral-small", source_lang="en", target_langs=["es", "it"], provider="mistral",
            retranslate=True,
            files=FileConfig(source_dir="./content", target_dir="./content/[lang]"),
        )
        path = write_config_file(config, str(tmp_path / "speranto.config.yaml"))
        data = yaml.safe_load(path.read_text(encoding="utf-8"))
        assert "api_key" not in data
        assert "sequential" not in data

        reloaded = Config.from_dict(load_config_file(str(path)))
        assert reloaded.target_langs == ["es", "it"]
        assert reloaded.retranslate is True
        assert reloaded.files == config.files
