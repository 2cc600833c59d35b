"""Tests for template filling and the prompt renderer."""

import pytest

from market_peak.services.prompt_renderer import PROMPTS_DIR, PromptRenderer
from market_peak.services.payload_builder import daily_field, recent_field
from peak_core.errors import TemplateError
from peak_core.template import fill_template, format_value, placeholders


class TestFillTemplate:
    """Tests for literal placeholder substitution."""

    def test_scalar_values(self):
        assert fill_template("{{a}} and {{b}}", {"a": 1, "b": "two"}) == "1 and two"

    def test_repeated_placeholder(self):
        assert fill_template("{{x}}-{{x}}", {"x": "y"}) == "y-y"

    def test_structured_values_indented(self):
        rendered = fill_template("raw:\n{{raw}}", {"raw": {"note": "no_bull_peak_data"}})
        assert rendered == 'raw:\n{\n  "note": "no_bull_peak_data"\n}'

    def test_unmatched_left_verbatim_by_default(self):
        assert fill_template("{{known}} {{unknown}}", {"known": 1}) == "1 {{unknown}}"

    def test_replacement_text_not_reinterpreted(self):
        assert fill_template("{{a}}", {"a": r"\1 {{b}}", "b": "x"}) == r"\1 {{b}}"

    def test_on_missing_callback(self):
        assert fill_template("{{gone}}", {}, on_missing=lambda k: f"<{k}>") == "<gone>"

    def test_placeholders_in_order(self):
        assert placeholders("{{b}} {{a}} {{b}}") == ["b", "a"]

    def test_format_value_list(self):
        assert format_value([1]) == "[\n  1\n]"


class TestPromptRenderer:
    """Tests for PromptRenderer."""

    @pytest.fixture
    def prompts_dir(self, tmp_path):
        (tmp_path / "peak-v1.md").write_text("Score {{asset}} at {{timestamp}}", encoding="utf-8")
        (tmp_path / "peak-v2.md").write_text("V2 {{asset}} {{extra}}", encoding="utf-8")
        return tmp_path

    def test_render(self, prompts_dir):
        renderer = PromptRenderer(prompts_dir)
        assert renderer.render("peak", "v1", {"asset": "BTC", "timestamp": "now"}) == "Score BTC at now"

    def test_template_cached_per_version(self, prompts_dir):
        renderer = PromptRenderer(prompts_dir)
        renderer.load_template("peak", "v1")
        (prompts_dir / "peak-v1.md").write_text("changed", encoding="utf-8")

        assert renderer.load_template("peak", "v1") == "Score {{asset}} at {{timestamp}}"
        assert renderer.load_template("peak", "v2").startswith("V2")

    def test_missing_placeholder_marker(self, prompts_dir):
        renderer = PromptRenderer(prompts_dir, strict=False)
        assert renderer.render("peak", "v2", {"asset": "ETH"}) == "V2 ETH [missing: extra]"

    def test_missing_placeholder_strict(self, prompts_dir):
        renderer = PromptRenderer(prompts_dir, strict=True)
        with pytest.raises(TemplateError, match="extra"):
            renderer.render("peak", "v2", {"asset": "ETH"})

    def test_missing_template(self, prompts_dir):
        with pytest.raises(TemplateError):
            PromptRenderer(prompts_dir).render("nope", "v1", {})


class TestShippedTemplate:
    """The bundled template must match the payload field names."""

    def test_v1_placeholders_match_payload_contract(self):
        template = PromptRenderer(PROMPTS_DIR).load_template("market-peak-analysis", "v1")
        expected = {"timestamp", "bull_market_peak_indicators", "bull_market_peak_raw"}
        for asset in ("bitcoin", "ethereum", "solana"):
            expected.add(recent_field(asset))
            expected.add(daily_field(asset))

        assert set(placeholders(template)) == expected
