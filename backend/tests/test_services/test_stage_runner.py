"""Tests for the generated-stage producers and their fallbacks."""
import asyncio
import json

import pytest

from mvp_studio.schemas.common import DocumentSource, TargetTool
from mvp_studio.services import stage_runner, wizard
from mvp_studio.services.stage_runner import (
    build_app_flow,
    fallback_blueprint,
    generate_blueprint,
    generate_mvp_prompt,
    generate_screen_prompts,
    run_stage,
)
from mvp_studio.services.wizard import Stage, WizardTransitionError


def _llm_returning(answer):
    async def fake_generate_text(prompt, settings=None, temperature=None):
        return answer
    return fake_generate_text


class TestFallbackBlueprint:
    def test_contains_original_idea_verbatim(self, app_idea):
        blueprint = fallback_blueprint(app_idea)
        assert blueprint.source == DocumentSource.FALLBACK
        assert app_idea.app_name in blueprint.architecture
        assert app_idea.idea_description in blueprint.architecture
        assert [s.id for s in blueprint.screens] == ["home", "login", "dashboard"]
        assert [r.name for r in blueprint.user_roles] == ["Regular User", "Admin"]

    def test_mobile_adds_onboarding(self, mobile_idea):
        blueprint = fallback_blueprint(mobile_idea)
        assert blueprint.screens[-1].id == "onboarding"
        assert "Onboarding -> Login/Signup" in blueprint.navigation_flow


class TestGenerateBlueprint:
    def test_no_llm_key_uses_fallback(self, app_idea, validation, settings):
        blueprint = asyncio.run(generate_blueprint(app_idea, validation, settings))
        assert blueprint == fallback_blueprint(app_idea)

    @pytest.mark.parametrize("answer", [
        "Sorry, I cannot help with that.",
        '{"screens": "not a list"}',
        '{"screens": [{"name": "Missing id"}]}',
        "",
    ])
    def test_unusable_answer_uses_fallback(self, app_idea, validation, settings, monkeypatch, answer):
        monkeypatch.setattr(stage_runner, "generate_text", _llm_returning(answer))
        blueprint = asyncio.run(generate_blueprint(app_idea, validation, settings))
        assert blueprint.source == DocumentSource.FALLBACK
        assert app_idea.idea_description in blueprint.architecture

    def test_parsed_answer_is_marked_ai(self, app_idea, validation, settings, monkeypatch):
        answer = "<think>plan first</think>\n```json\n" + json.dumps({
            "screens": [{"id": "board", "name": "Sprint Board", "purpose": "Drag tasks", "components": ["Columns"]}],
            "userRoles": [{"name": "Member"}],
            "dataModels": [{"name": "Task", "fields": ["id", "title"]}],
            "navigationFlow": "Board -> Task",
            "architecture": "SPA with a REST backend",
        }) + "\n```"
        monkeypatch.setattr(stage_runner, "generate_text", _llm_returning(answer))

        blueprint = asyncio.run(generate_blueprint(app_idea, validation, settings))

        assert blueprint.source == DocumentSource.AI
        assert blueprint.screens[0].name == "Sprint Board"
        assert blueprint.data_models[0].fields == ("id", "title")


class TestGenerateScreenPrompts:
    def test_one_prompt_per_screen_in_order(self, app_idea, settings):
        blueprint = fallback_blueprint(app_idea)
        prompts = asyncio.run(generate_screen_prompts(app_idea, blueprint, TargetTool.LOVABLE, settings))
        assert [p.screen_id for p in prompts] == [s.id for s in blueprint.screens]
        assert all(p.source == DocumentSource.FALLBACK for p in prompts)
        assert prompts[0].layout.startswith("Create a minimal home screen")

    def test_missing_screens_fall_back_individually(self, app_idea, settings, monkeypatch):
        blueprint = fallback_blueprint(app_idea)
        answer = json.dumps({"screens": [{
            "screenId": "login",
            "title": "Sign In",
            "layout": "Centered card",
            "components": "Email, password, submit",
            "behavior": "Disable submit while pending",
        }]})
        monkeypatch.setattr(stage_runner, "generate_text", _llm_returning(answer))

        prompts = asyncio.run(generate_screen_prompts(app_idea, blueprint, TargetTool.CURSOR, settings))

        by_id = {p.screen_id: p for p in prompts}
        assert by_id["login"].source == DocumentSource.AI
        assert by_id["login"].title == "Sign In"
        assert by_id["login"].conditional_logic  # filled from the fallback
        assert by_id["home"].source == DocumentSource.FALLBACK

    def test_blueprint_without_screens(self, app_idea, settings):
        empty = fallback_blueprint(app_idea).model_copy(update={"screens": ()})
        with pytest.raises(WizardTransitionError):
            asyncio.run(generate_screen_prompts(app_idea, empty, TargetTool.LOVABLE, settings))


class TestAppFlow:
    def test_flow_is_template(self, mobile_idea):
        flow = build_app_flow(mobile_idea, fallback_blueprint(mobile_idea))
        assert flow.source == DocumentSource.TEMPLATE
        assert "Onboarding -> Home Screen" in flow.flow_logic
        assert "Bounce effects for interactive elements" in flow.screen_transitions


class TestRunStage:
    def test_full_run_completes_wizard(self, validated_state, settings):
        state = validated_state
        for stage in (Stage.BLUEPRINT, Stage.SCREEN_PROMPTS, Stage.FLOW, Stage.EXPORT):
            run = asyncio.run(run_stage(state, stage, TargetTool.LOVABLE, settings))
            state = run.state

        assert wizard.is_complete(state)
        assert state.completed_stages == (1, 2, 3, 4, 5, 6)
        assert state.export_prompts.unified_prompt.endswith("Generated by BuildTrix MVP Studio")
        assert run.validation is not None
        assert run.knowledge_count == 0

    def test_blueprint_run_reports_fallback(self, validated_state, settings):
        run = asyncio.run(run_stage(validated_state, 3, None, settings))
        assert run.used_fallback is True
        assert run.target_tool == TargetTool.LOVABLE
        assert run.state.current_stage == 4

    def test_user_input_stages_cannot_be_generated(self, validated_state, settings):
        with pytest.raises(WizardTransitionError):
            asyncio.run(run_stage(validated_state, 2, None, settings))

    def test_missing_upstream_rejected(self, validated_state, settings):
        with pytest.raises(WizardTransitionError):
            asyncio.run(run_stage(validated_state, Stage.FLOW, None, settings))

    def test_completed_flag_without_blueprint_rejected(self, validated_state, settings):
        hollow = validated_state.model_copy(update={"completed_stages": (1, 2, 3), "current_stage": 4})
        with pytest.raises(WizardTransitionError, match="blueprint"):
            asyncio.run(run_stage(hollow, Stage.SCREEN_PROMPTS, TargetTool.V0, settings))


class TestGenerateMvpPrompt:
    def test_falls_back_to_assembled_prompt(self, app_idea, validation, settings):
        text, tool, used_fallback = asyncio.run(generate_mvp_prompt(app_idea, validation, settings))
        assert used_fallback is True
        assert tool == TargetTool.LOVABLE
        assert "TaskMaster Pro" in text
        assert text.endswith("FRAMEWORK APPROACH: " + stage_runner.get_profile(tool).framework)

    def test_uses_llm_answer(self, app_idea, validation, settings, monkeypatch):
        monkeypatch.setattr(stage_runner, "generate_text", _llm_returning("  Build TaskMaster Pro like this.  "))
        text, _, used_fallback = asyncio.run(generate_mvp_prompt(app_idea, validation, settings))
        assert used_fallback is False
        assert text == "Build TaskMaster Pro like this."
