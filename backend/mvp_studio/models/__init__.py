"""SQLAlchemy ORM models package."""
from mvp_studio.models.mvp import Mvp
from mvp_studio.models.questionnaire import Questionnaire
from mvp_studio.models.studio_session import StudioSession
from mvp_studio.models.generated_prompt import GeneratedPrompt
from mvp_studio.models.prompt_generation_log import PromptGenerationLog
from mvp_studio.models.rate_limit_event import RateLimitEvent
from mvp_studio.models.prompt_template import PromptTemplate

__all__ = [
    "Mvp",
    "Questionnaire",
    "StudioSession",
    "GeneratedPrompt",
    "PromptGenerationLog",
    "RateLimitEvent",
    "PromptTemplate",
]
