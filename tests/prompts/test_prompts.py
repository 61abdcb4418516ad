# tests/prompts/test_prompts.py

import pytest
from pathlib import Path

from src.models.prompts import PromptManager, PromptConfig
from src.settings import DEFAULT_PROMPTS_DIR


@pytest.fixture
def temp_prompts_dir(tmp_path):
    """Create a temporary prompts directory with test data"""
    prompts_path = tmp_path / "prompts"

    # User-only prompt with default variables
    chart_v1 = prompts_path / "chart" / "analyze" / "v1"
    chart_v1.mkdir(parents=True)
    (chart_v1 / "config.yaml").write_text("""
variables:
  max_chars: 200
""")
    (chart_v1 / "user.j2").write_text("""Describe the chart in {{ max_chars }} characters.
{% if symbol is defined %}
Symbol: {{ symbol }}
{% endif %}""")

    # Prompt with a system template and no config file
    summary_v1 = prompts_path / "chart" / "summary" / "v1"
    summary_v1.mkdir(parents=True)
    (summary_v1 / "system.j2").write_text("You are a technical analyst.")
    (summary_v1 / "user.j2").write_text("Summarize: {{ notes }}")

    # Prompt with empty config
    minimal_v1 = prompts_path / "minimal" / "test" / "v1"
    minimal_v1.mkdir(parents=True)
    (minimal_v1 / "config.yaml").write_text("")
    (minimal_v1 / "user.j2").write_text("User: {{ input }}")

    return prompts_path


@pytest.fixture
def manager(temp_prompts_dir):
    """Create a PromptManager with test data"""
    return PromptManager(temp_prompts_dir)


# ============ Prompt Loading Tests ============

class TestPromptLoading:
    def test_load_prompt_with_defaults(self, manager):
        """Load a prompt whose config declares default variables"""
        config = manager.load_prompt("chart/analyze@v1")

        assert isinstance(config, PromptConfig)
        assert config.name == "chart/analyze"
        assert config.version == "v1"
        assert config.defaults == {"max_chars": 200}
        assert config.system_template is None
        assert "{{ max_chars }}" in config.user_template

    def test_load_prompt_without_config(self, manager):
        config = manager.load_prompt("chart/summary@v1")

        assert config.defaults == {}
        assert config.system_template == "You are a technical analyst."

    def test_load_prompt_with_empty_config(self, manager):
        config = manager.load_prompt("minimal/test@v1")
        assert config.defaults == {}

    def test_load_missing_prompt(self, manager):
        """Fail clearly when prompt doesn't exist"""
        with pytest.raises(FileNotFoundError, match="Prompt not found"):
            manager.load_prompt("chart/analyze@v99")

    def test_load_missing_user_template(self, temp_prompts_dir, manager):
        """Fail clearly when user.j2 is missing"""
        broken_prompt = temp_prompts_dir / "broken" / "test" / "v1"
        broken_prompt.mkdir(parents=True)
        (broken_prompt / "system.j2").write_text("System prompt")

        with pytest.raises(FileNotFoundError, match="Template file not found"):
            manager.load_prompt("broken/test@v1")

    def test_invalid_reference_format(self, manager):
        with pytest.raises(ValueError, match="Invalid prompt reference"):
            manager.load_prompt("chart/analyze")  # Missing version

    def test_missing_prompts_dir(self, tmp_path):
        with pytest.raises(FileNotFoundError, match="Prompts dir not found"):
            PromptManager(tmp_path / "nope")

    def test_caching(self, manager):
        """Verify prompts are cached after first load"""
        config1 = manager.load_prompt("chart/analyze@v1")
        config2 = manager.load_prompt("chart/analyze@v1")
        assert config1 is config2

    def test_prompt_config_ref_property(self, manager):
        config = manager.load_prompt("chart/analyze@v1")
        assert config.ref == "chart/analyze@v1"


# ============ Prompt Rendering Tests ============

class TestPromptRendering:
    def test_render_user_only_prompt(self, manager):
        """A prompt without system.j2 renders to a single user message"""
        messages = manager.render("chart/analyze@v1", {})

        assert len(messages) == 1
        assert messages[0]["role"] == "user"
        assert messages[0]["content"].strip() == "Describe the chart in 200 characters."

    def test_variables_override_defaults(self, manager):
        messages = manager.render("chart/analyze@v1", {"max_chars": 50, "symbol": "BTCUSD"})

        content = messages[0]["content"]
        assert "50 characters" in content
        assert "Symbol: BTCUSD" in content

    def test_render_with_system_template(self, manager):
        messages = manager.render("chart/summary@v1", {"notes": "higher highs"})

        assert len(messages) == 2
        assert messages[0] == {"role": "system", "content": "You are a technical analyst."}
        assert messages[1] == {"role": "user", "content": "Summarize: higher highs"}

    def test_render_missing_required_variable(self, manager):
        with pytest.raises(ValueError, match="Missing required variable"):
            manager.render("chart/summary@v1", {})


class TestShippedChartPrompt:
    """The chart analysis prompt that ships in prompts/"""

    def test_renders_strict_json_instructions(self):
        messages = PromptManager(DEFAULT_PROMPTS_DIR).render("chart/analyze@v1", {})

        assert len(messages) == 1
        assert messages[0]["role"] == "user"
        content = messages[0]["content"]
        assert '"recommendation": "SUBIR" o "BAJAR" o "NEUTRAL",' in content
        assert "máximo 200 caracteres" in content
        assert '"patterns"' in content
        assert '"timeframe"' in content
        assert "RSI, MACD, EMA, SMA" in content
