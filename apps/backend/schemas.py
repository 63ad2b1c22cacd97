"""
LinguaLens - Data Schemas
=========================
Pydantic models for the HTTP API and for service return values.
"""

from datetime import datetime
from typing import Any, Dict, List, Literal, Optional
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field


def _new_id() -> str:
    return str(uuid4())


# =============================================================================
# Auth Models
# =============================================================================

class SignUpRequest(BaseModel):
    email: str = Field(..., description="Account email")
    password: str = Field(..., description="Plain password, checked against strength rules")
    confirm_password: str = Field(..., description="Must equal password")
    username: str = Field(default="", description="Public username, unique")


class SignInRequest(BaseModel):
    email: str
    password: str


class AuthUser(BaseModel):
    id: str
    email: Optional[str] = None
    username: Optional[str] = None


class AuthSession(BaseModel):
    """Tokens returned by a successful sign-in."""

    user: AuthUser
    access_token: Optional[str] = Field(
        default=None,
        description="Bearer token; absent when email confirmation is pending"
    )
    refresh_token: Optional[str] = None
    expires_at: Optional[int] = None


# =============================================================================
# Analysis Models
# =============================================================================

class ActionItem(BaseModel):
    id: str = Field(default_factory=_new_id)
    text: str
    completed: bool = False


class Section(BaseModel):
    id: str = Field(default_factory=_new_id)
    title: str
    content: str = ""
    audio_url: Optional[str] = None


class AnalysisTranslation(BaseModel):
    summary: str = ""
    action_items: List[ActionItem] = Field(default_factory=list)


class AnalysisResult(BaseModel):
    """Summary, follow-up questions, action items and sections of a document."""

    summary: str = Field(default="No summary available")
    relevant_questions: List[str] = Field(default_factory=list)
    action_items: List[ActionItem] = Field(default_factory=list)
    sections: List[Section] = Field(default_factory=list)
    translations: Dict[str, AnalysisTranslation] = Field(
        default_factory=lambda: {"es": AnalysisTranslation()},
        description="Per-language translated summary and action items"
    )


class ContextAnalysis(BaseModel):
    relevant_content: List[str] = Field(default_factory=list)
    summary: str
    confidence: float = Field(..., ge=0.0, le=1.0)


class AnalyzeRequest(BaseModel):
    text: str = Field(..., min_length=1)


class TranslateAnalysisRequest(BaseModel):
    analysis: AnalysisResult
    source_language: str = "en"
    target_language: str


# =============================================================================
# Translation Models
# =============================================================================

class TranslateRequest(BaseModel):
    text: str = Field(..., description="Text to translate")
    source_language: str = Field(default="en")
    target_language: str = Field(..., description="ISO 639-1 target code")


class TranslateResponse(BaseModel):
    translated_text: str
    source_language: str
    target_language: str
    cached: bool = False


class BatchTranslateRequest(BaseModel):
    texts: List[str] = Field(..., max_length=100)
    source_language: str = Field(default="en")
    target_language: str


class BatchTranslateResponse(BaseModel):
    translations: List[str]
    source_language: str
    target_language: str


class DetectLanguageRequest(BaseModel):
    text: str = Field(..., min_length=1)


class DetectLanguageResponse(BaseModel):
    language: str


class LanguageResponse(BaseModel):
    code: str
    name: str
    native_name: Optional[str] = None


# =============================================================================
# Document Models
# =============================================================================

class ProcessTextRequest(BaseModel):
    """Pasted text to analyze, translate and save."""

    text: str = Field(..., min_length=1)
    source_language: str = Field(default="en")
    target_language: str = Field(default="es")
    name: Optional[str] = Field(default=None, max_length=512)


class ProcessingResult(BaseModel):
    original_text: str
    translated_text: str
    analysis_result: AnalysisResult
    confidence_score: float = 0.8
    document_id: Optional[str] = None
    deduplicated: bool = False


class DocumentResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    size: int
    type: str
    original_text: str
    translated_text: Optional[str] = None
    source_language: str
    target_language: str
    image_url: Optional[str] = None
    summary: Optional[str] = None
    analysis: Optional[Dict[str, Any]] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    preview_translation: Optional[str] = Field(
        default=None,
        description="Original text re-translated into a requested preview language"
    )


class DocumentListResponse(BaseModel):
    documents: List[DocumentResponse] = Field(default_factory=list)
    total: int = 0
    has_more: bool = False
    page: int = 1
    per_page: int = 5
    error: Optional[str] = None


# =============================================================================
# Document Chat Models
# =============================================================================

class ChatMessage(BaseModel):
    role: Literal["system", "user", "assistant"]
    content: str


class DocumentChatRequest(BaseModel):
    message: str = Field(..., min_length=1, description="User's question about the document")
    history: List[ChatMessage] = Field(default_factory=list)
    source_language: str = Field(default="en")
    target_language: str = Field(default="en", description="Language for the suggested questions")


class DocumentChatResponse(BaseModel):
    response: str
    translated_questions: List[str] = Field(default_factory=list)


# =============================================================================
# Live Chat Models
# =============================================================================

class SendMessageRequest(BaseModel):
    content: str = Field(..., max_length=4000)


class LiveMessage(BaseModel):
    id: str
    user_id: str
    username: str
    content: str
    created_at: Optional[datetime] = None


# =============================================================================
# Download Models
# =============================================================================

class CreateDownloadRequest(BaseModel):
    filename: str = Field(..., min_length=1, max_length=512)
    url: str = Field(..., min_length=1)
    size: int = Field(default=0, ge=0)


class UpdateDownloadRequest(BaseModel):
    status: Literal["pending", "downloading", "completed", "error"]
    progress: Optional[float] = Field(default=None, ge=0.0, le=100.0)
    error: Optional[str] = None


class DownloadResponse(BaseModel):
    id: str
    filename: str
    size: int
    size_label: str
    url: str
    status: str
    progress: Optional[float] = None
    error: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


# =============================================================================
# Speech Models
# =============================================================================

class SpeechRequest(BaseModel):
    text: str = Field(..., description="Text to speak")
    language: str = Field(default="en-US", description="BCP 47 tag for the browser fallback")
    voice_id: Optional[str] = Field(default=None, description="ElevenLabs voice override")
    voice_index: int = Field(default=0, ge=0, description="Preferred-voice index for the fallback")


class BrowserSpeechPlan(BaseModel):
    """Instructions for client-side speech synthesis."""

    text: str
    lang: str
    preferred_voices: List[str] = Field(default_factory=list)
    voice_index: int = 0
    rate: float = 0.9
    pitch: float = 1.0
    volume: float = 1.0


# =============================================================================
# System Models
# =============================================================================

class KeyValidationRequest(BaseModel):
    openai_api_key: Optional[str] = None
    elevenlabs_api_key: Optional[str] = None


class KeyValidationResponse(BaseModel):
    openai: bool
    elevenlabs: bool
