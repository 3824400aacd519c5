import os
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Any

from dotenv import load_dotenv

OTHER_OPTION = "Other"


class PrimaryCategory(str, Enum):
    """Top-level assessment categories a user can select"""
    BACKGROUND = "Background and experience"
    TECHNICAL = "Technical or role-specific skills"
    SOFT_SKILLS = "Soft skills and ways of working"
    CULTURE = "Culture and values alignment"
    MOTIVATION = "Motivation and career goals"
    PRACTICAL = "Practical details and deal breakers"

    @classmethod
    def labels(cls) -> List[str]:
        return [c.value for c in cls]

    @classmethod
    def from_label(cls, label: str) -> "PrimaryCategory":
        """Look up a category by its display label"""
        for category in cls:
            if category.value == label:
                return category
        raise ValueError(f"Unknown category: {label}")


# Vocabulary offered to the model for secondTierCompetencies (not enforced)
SECOND_TIER_COMPETENCIES = (
    "Problem solving and decision making",
    "Learning ability and adaptability",
    "Strategic thinking and business impact",
    "Data literacy and analytical thinking",
    "Product thinking (value vs effort, impact)",
    "Quality, process and attention to detail",
    "Attention to security and privacy",
    "Process improvement and optimisation",
    "Cross-cultural communication",
    "Negotiation and influence",
    "Conflict resolution",
    "Change management",
    "Planning, organisation and execution",
    "Collaboration in cross-functional squads",
    "Stakeholder and client management",
    "Remote or distributed work readiness",
    "Documentation and knowledge sharing",
    "Initiative and proactiveness",
    "Resilience and stress management",
    "Ethics, compliance and professionalism",
    "Ownership and accountability",
    "Risk awareness and mitigation",
    "Environmental and social responsibility mindset",
    "Customer focus and service mindset",
    "Commercial awareness and business acumen",
    "Innovation and creative thinking",
    "Leadership and people management",
    "Coaching and mentoring",
    "Ownership of end-to-end outcomes",
)


def coerce_scoring_guide(raw: Any) -> Dict[Any, str]:
    """Scoring guide with keys turned into ints where possible; anything else kept as is"""
    if not isinstance(raw, dict):
        return {}
    guide = {}
    for key, description in raw.items():
        try:
            key = int(key)
        except (TypeError, ValueError):
            pass
        guide[key] = str(description)
    return guide


def _env_list(name: str, default: List[str]) -> List[str]:
    raw = os.getenv(name)
    if not raw:
        return list(default)
    return [item.strip() for item in raw.split(",") if item.strip()]


# Configuration for the assessment builder
@dataclass
class AssessmentConfig:
    """Configuration settings for question and suggestion generation"""
    question_model: str = "gpt-4o-mini"
    suggestion_model: str = "gpt-4o-mini"
    temperature: float = 0.7
    llm_timeout: int = 30
    max_questions: int = 10
    options_per_question: int = 4
    default_max_answer_time: int = 90
    other_option: str = OTHER_OPTION
    suggestion_min_length: int = 2
    suggestion_debounce_seconds: float = 0.3
    max_suggestions: int = 5
    langsmith_project: str = "jabri-rolefit-assessment"
    cors_origins: List[str] = field(default_factory=lambda: [
        "http://localhost:3000",
        "http://127.0.0.1:3000",
    ])

    @classmethod
    def from_env(cls) -> "AssessmentConfig":
        """Build a config from environment variables (and a .env file if present)"""
        load_dotenv()
        defaults = cls()
        return cls(
            question_model=os.getenv("ROLEFIT_QUESTION_MODEL", defaults.question_model),
            suggestion_model=os.getenv("ROLEFIT_SUGGESTION_MODEL", defaults.suggestion_model),
            temperature=float(os.getenv("ROLEFIT_TEMPERATURE", defaults.temperature)),
            max_questions=int(os.getenv("ROLEFIT_MAX_QUESTIONS", defaults.max_questions)),
            suggestion_debounce_seconds=float(
                os.getenv("ROLEFIT_DEBOUNCE_SECONDS", defaults.suggestion_debounce_seconds)
            ),
            cors_origins=_env_list("ROLEFIT_CORS_ORIGINS", defaults.cors_origins),
        )

    def configure_tracing(self) -> bool:
        """Enable LangSmith tracing when an API key is present in the environment"""
        if not os.getenv("LANGCHAIN_API_KEY"):
            return False
        os.environ["LANGCHAIN_TRACING_V2"] = "true"
        os.environ["LANGCHAIN_PROJECT"] = os.getenv("LANGCHAIN_PROJECT") or self.langsmith_project
        return True


class AssessmentStep(str, Enum):
    SELECTING_CATEGORIES = "selecting-categories"
    ANSWERING_QUESTIONS = "answering-questions"
    COMPLETE = "complete"


# Data model for generated assessment questions
@dataclass(frozen=True)
class Question:
    """A generated screening question with its options and scoring guide"""
    id: str
    text: str
    primary_category: str
    second_tier_competencies: List[str] = field(default_factory=list)
    options: List[str] = field(default_factory=list)
    what_it_measures: str = ""
    max_answer_time: int = 90
    scoring_guide: Dict[int, str] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Question':
        """Create Question from its wire (camelCase) dictionary"""
        return cls(
            id=data.get("id", ""),
            text=data.get("text", ""),
            primary_category=data.get("primaryCategory", ""),
            second_tier_competencies=list(data.get("secondTierCompetencies") or []),
            options=list(data.get("options") or []),
            what_it_measures=data.get("whatItMeasures") or "",
            max_answer_time=int(data.get("maxAnswerTime") or 90),
            scoring_guide=coerce_scoring_guide(data.get("scoringGuide"))
        )

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization"""
        return {
            "id": self.id,
            "text": self.text,
            "primaryCategory": self.primary_category,
            "secondTierCompetencies": list(self.second_tier_competencies),
            "options": list(self.options),
            "whatItMeasures": self.what_it_measures,
            "maxAnswerTime": self.max_answer_time,
            "scoringGuide": {str(k): v for k, v in self.scoring_guide.items()}
        }

    def summary(self) -> Dict[str, str]:
        """Redacted form sent back to the generator as a previous question"""
        return {"text": self.text, "primaryCategory": self.primary_category}


# State of one assessment-taking interaction
@dataclass
class AssessmentSession:
    """Mutable session data owned by the state machine"""
    step: AssessmentStep = AssessmentStep.SELECTING_CATEGORIES
    selected_categories: List[str] = field(default_factory=list)
    questions: List[Question] = field(default_factory=list)
    answers: Dict[str, List[str]] = field(default_factory=dict)
    other_inputs: Dict[str, str] = field(default_factory=dict)
    current_question_index: int = 0

    def get_current_question(self) -> Optional[Question]:
        """Get the current question object"""
        if 0 <= self.current_question_index < len(self.questions):
            return self.questions[self.current_question_index]
        return None

    def answers_with_other(self) -> Dict[str, List[str]]:
        """Answers with each non-empty free text appended as an 'Other: <text>' entry"""
        merged = {qid: list(selected) for qid, selected in self.answers.items()}
        for qid, value in self.other_inputs.items():
            if value:
                merged.setdefault(qid, []).append(f"{OTHER_OPTION}: {value}")
        return merged

    def clear(self):
        """Drop all session data and return to category selection"""
        self.step = AssessmentStep.SELECTING_CATEGORIES
        self.selected_categories = []
        self.questions = []
        self.answers = {}
        self.other_inputs = {}
        self.current_question_index = 0
