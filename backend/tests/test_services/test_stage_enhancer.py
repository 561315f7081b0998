"""Tests for knowledge-based stage enhancement."""
import asyncio

import pytest

from mvp_studio.schemas.common import EnhanceStage, TargetTool
from mvp_studio.services import stage_enhancer
from mvp_studio.services.knowledge_client import KnowledgeSnippet
from mvp_studio.services.stage_enhancer import enhance_stage, stage_suggestions
from mvp_studio.services.stage_runner import fallback_blueprint, fallback_screen_prompt
from mvp_studio.services.wizard import WizardTransitionError


def _knowledge(*snippets):
    async def fake_search(query, categories=None, target_tools=None, max_results=None, settings=None):
        return list(snippets)
    return fake_search


@pytest.fixture
def blueprint_data(app_idea, validation):
    return {
        "appIdea": app_idea.model_dump(mode="json", by_alias=True),
        "validationQuestions": validation.model_dump(mode="json", by_alias=True),
        "appBlueprint": fallback_blueprint(app_idea).model_dump(mode="json", by_alias=True),
    }


@pytest.fixture
def screens_data(app_idea, validation):
    blueprint = fallback_blueprint(app_idea)
    return {
        "appIdea": app_idea.model_dump(mode="json", by_alias=True),
        "validationQuestions": validation.model_dump(mode="json", by_alias=True),
        "screenPrompts": [
            fallback_screen_prompt(app_idea, blueprint, s).model_dump(mode="json", by_alias=True)
            for s in blueprint.screens
        ],
    }


class TestEnhanceBlueprint:
    def test_without_knowledge(self, blueprint_data, settings):
        result = asyncio.run(enhance_stage(EnhanceStage.BLUEPRINT, blueprint_data, settings))

        assert result.target_tool == TargetTool.LOVABLE
        # 0.4 base + screens + data models + known tool
        assert result.confidence_score == 0.9
        assert result.blueprint.rag_enhanced is True
        assert "Tool-Specific Recommendations:" in result.blueprint.architecture
        assert "Optimize for Lovable.dev development workflow" in result.suggestions
        assert result.blueprint.security_considerations[0] == "Implement proper authentication and authorization"

    def test_enhancing_twice_does_not_stack_sections(self, blueprint_data, settings):
        first = asyncio.run(enhance_stage(EnhanceStage.BLUEPRINT, blueprint_data, settings))
        again = dict(blueprint_data, appBlueprint=first.blueprint.model_dump(mode="json", by_alias=True))
        second = asyncio.run(enhance_stage(EnhanceStage.BLUEPRINT, again, settings))
        assert second.blueprint.architecture.count("Tool-Specific Recommendations:") == 1

    def test_knowledge_adds_notes_and_confidence(self, blueprint_data, settings, monkeypatch):
        snippets = [
            KnowledgeSnippet(
                id=f"k{i}", title=f"Pattern {i}", content="Use JWT tokens and RLS policies behind a CDN.",
                categories=("authentication", "performance", "architecture"), similarity_score=0.8,
            )
            for i in range(6)
        ]
        monkeypatch.setattr(stage_enhancer, "search_knowledge", _knowledge(*snippets))

        result = asyncio.run(enhance_stage(EnhanceStage.BLUEPRINT, blueprint_data, settings))

        assert result.confidence_score == 1.0
        assert "Use secure token-based authentication" in result.blueprint.security_considerations
        assert "Implement Row Level Security (RLS) for data protection" in result.blueprint.security_considerations
        assert "Consider CDN for static asset delivery" in result.blueprint.scalability_notes
        assert "Architecture Insights:" in result.blueprint.architecture
        payload = result.to_payload()
        assert len(payload["relevantKnowledge"]) == 6
        assert payload["enhancedBlueprint"]["ragEnhanced"] is True

    def test_missing_data_rejected(self, blueprint_data, settings):
        del blueprint_data["appBlueprint"]
        with pytest.raises(WizardTransitionError, match="blueprint data are required"):
            asyncio.run(enhance_stage(EnhanceStage.BLUEPRINT, blueprint_data, settings))

    def test_malformed_data_rejected(self, blueprint_data, settings):
        blueprint_data["appIdea"] = {"appName": "x"}
        with pytest.raises(WizardTransitionError, match="Invalid blueprint payload"):
            asyncio.run(enhance_stage(EnhanceStage.BLUEPRINT, blueprint_data, settings))


class TestEnhanceScreenPrompts:
    def test_optimized_prompt_per_screen(self, screens_data, settings):
        result = asyncio.run(enhance_stage(EnhanceStage.SCREEN_PROMPTS, screens_data, settings))

        assert set(result.optimized_prompts) == {"home", "login", "dashboard"}
        assert "## Lovable.dev Optimizations" in result.optimized_prompts["home"]
        assert "## Minimal & Clean Design Style" in result.optimized_prompts["home"]
        assert all(p.rag_enhanced for p in result.screen_prompts)
        payload = result.to_payload()
        assert set(payload["enhancedPrompts"]) == {
            "screens", "optimizedPrompts", "designSystemGuidelines", "componentPatterns", "toolSpecificOptimizations",
        }

    def test_conversational_tool_has_no_optimization_block(self, screens_data, settings):
        screens_data["validationQuestions"]["preferredAITool"] = "claude"
        result = asyncio.run(enhance_stage(EnhanceStage.SCREEN_PROMPTS, screens_data, settings))
        assert result.target_tool == TargetTool.CLAUDE
        assert "Optimizations" not in result.optimized_prompts["login"]
        assert result.confidence_score == 0.8


class TestStageSuggestions:
    def test_truncates_long_content(self, settings, monkeypatch):
        long_text = "x" * 250
        monkeypatch.setattr(stage_enhancer, "search_knowledge", _knowledge(
            KnowledgeSnippet(id="1", title="Long", content=long_text, similarity_score=0.7),
            KnowledgeSnippet(id="2", title="Short", content="Keep it short.", similarity_score=0.9),
        ))
        suggestions = asyncio.run(stage_suggestions("blueprint", "task app", settings))
        assert [s["title"] for s in suggestions] == ["Short", "Long"]
        assert suggestions[1]["content"] == "x" * 200 + "..."

    def test_unconfigured_service_returns_nothing(self, settings):
        assert asyncio.run(stage_suggestions("blueprint", "task app", settings)) == []
