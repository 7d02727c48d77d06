"""Pydantic schemas for API request/response validation."""
from datetime import datetime
from typing import Dict, List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

from plantcards.auth import check_password_strength
from plantcards.services.filters import PlantFilters


# === Auth Schemas ===
class SignupRequest(BaseModel):
    email: EmailStr
    password: str

    @field_validator("email")
    @classmethod
    def lower_email(cls, v):
        return v.lower()

    @field_validator("password")
    @classmethod
    def validate_password(cls, v):
        return check_password_strength(v)


class LoginRequest(BaseModel):
    email: EmailStr
    password: str

    @field_validator("email")
    @classmethod
    def lower_email(cls, v):
        return v.lower()


class TokenResponse(BaseModel):
    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    is_admin: bool = False


class RefreshRequest(BaseModel):
    refresh_token: str


class LogoutRequest(BaseModel):
    refresh_token: str


class UserResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    email: str
    is_active: bool
    is_admin: bool
    oauth_provider: Optional[str] = None
    created_at: datetime
    last_login: Optional[datetime] = None


class OAuthUrlResponse(BaseModel):
    url: str


class AuthErrorResponse(BaseModel):
    error: str
    message: str


# === Settings & Profile Schemas ===
class SettingsResponse(BaseModel):
    display_name: Optional[str] = None
    email: str
    bio: Optional[str] = None
    location: Optional[str] = None
    website: Optional[str] = None
    show_admin_plants: bool = True
    show_admin_collections: bool = True
    show_admin_sightings: bool = True


class SettingsUpdate(BaseModel):
    display_name: Optional[str] = Field(default=None, max_length=100)
    bio: Optional[str] = None
    location: Optional[str] = Field(default=None, max_length=200)
    website: Optional[str] = Field(default=None, max_length=500)
    show_admin_plants: Optional[bool] = None
    show_admin_collections: Optional[bool] = None
    show_admin_sightings: Optional[bool] = None

    @field_validator("website")
    @classmethod
    def validate_website(cls, v):
        if v is None or not v.strip():
            return v
        v = v.strip()
        if not v.startswith(("http://", "https://")):
            raise ValueError("website must start with http:// or https://")
        return v


class PlantSummary(BaseModel):
    id: int
    slug: str
    scientific_name: str
    display_name: str


class RecentAnswer(BaseModel):
    plant_id: int
    plant_name: str
    is_correct: bool
    answered_at: datetime


class ProfileStatsResponse(BaseModel):
    total_plants: int
    mastered_count: int
    need_practice_count: int
    total_attempts: int
    correct_attempts: int
    incorrect_attempts: int
    mastered: List[PlantSummary]
    need_practice: List[PlantSummary]
    recent_answers: List[RecentAnswer]


# === Plant Schemas ===
class PlantBase(BaseModel):
    common_name: Optional[str] = None
    family: Optional[str] = None
    genus: Optional[str] = None
    specific_epithet: Optional[str] = None
    infraspecies_rank: Optional[str] = None
    infraspecies_epithet: Optional[str] = None
    variety: Optional[str] = None
    forma: Optional[str] = None
    cultivar: Optional[str] = None
    hybrid_marker: Optional[str] = None
    hybrid_marker_position: Optional[str] = None
    native_to: Optional[str] = None
    bloom_period: Optional[str] = None
    description: Optional[str] = None
    image_url: Optional[str] = None

    @field_validator("hybrid_marker")
    @classmethod
    def validate_hybrid_marker(cls, v):
        if v is None or v == "":
            return None
        if v.lower() != "x":
            raise ValueError("hybrid_marker must be 'x' or empty")
        return "x"

    @field_validator("hybrid_marker_position")
    @classmethod
    def validate_marker_position(cls, v):
        if v is None or v == "":
            return None
        if v not in ("before_genus", "between_genus_species"):
            raise ValueError("hybrid_marker_position must be before_genus or between_genus_species")
        return v


class PlantCreate(PlantBase):
    scientific_name: str
    slug: Optional[str] = None
    is_published: bool = True


class PlantUpdate(PlantBase):
    """Every field is optional; only the ones sent are changed."""
    scientific_name: Optional[str] = None
    slug: Optional[str] = None
    is_published: Optional[bool] = None


class PlantImageResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    plant_id: int
    filename: str
    path: str
    file_size: Optional[int] = None
    content_type: str
    is_primary: bool
    created_at: datetime
    url: Optional[str] = None


class PlantCard(PlantBase):
    id: int
    slug: str
    scientific_name: str
    is_published: bool
    is_admin_plant: bool
    user_id: Optional[UUID] = None
    created_at: datetime
    updated_at: datetime
    name_html: str
    display_name: str
    images: List[PlantImageResponse] = []
    primary_image_url: Optional[str] = None
    collection_ids: List[int] = []
    sightings_count: int = 0
    is_favorite: Optional[bool] = None
    is_testable: Optional[bool] = None
    my_sightings_count: Optional[int] = None


class CollectionRef(BaseModel):
    id: int
    name: str


class PlantDetail(PlantCard):
    collections: List[CollectionRef] = []


class PlantListResponse(BaseModel):
    plants: List[PlantCard]
    count: int
    query: str
    filters: PlantFilters


class AuditEntryResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    timestamp: datetime
    user_id: Optional[UUID] = None
    user_email: Optional[str] = None
    entity_type: str
    entity_id: int
    action: str
    diff_json: dict


# === Image Upload Schemas ===
class UploadItemResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    name: str
    size: int
    content_type: str
    status: str
    progress: int
    error: Optional[str] = None
    image_id: Optional[int] = None
    path: Optional[str] = None
    is_primary: bool = False


class BulkUploadResponse(BaseModel):
    items: List[UploadItemResponse]
    completed: int
    skipped: List[str]


class ImageCountResponse(BaseModel):
    plant_id: int
    count: int


# === Collection Schemas ===
class CollectionCreate(BaseModel):
    name: str = Field(min_length=1, max_length=200)
    description: Optional[str] = None
    is_published: bool = True


class CollectionUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=200)
    description: Optional[str] = None
    is_published: Optional[bool] = None


class CollectionResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    description: Optional[str] = None
    is_published: bool
    is_admin_collection: bool
    user_id: Optional[UUID] = None
    created_at: datetime
    plant_count: int = 0


class CollectionDetail(CollectionResponse):
    plants: List[PlantCard] = []


class CollectionPlantRequest(BaseModel):
    plant_id: int


# === Favorites ===
class FavoriteListResponse(BaseModel):
    plant_ids: List[int]


class FavoriteStateResponse(BaseModel):
    plant_id: int
    is_favorite: bool


# === Sightings ===
class SightingCreate(BaseModel):
    plant_id: int
    observed_at: Optional[datetime] = None
    location: Optional[str] = Field(default=None, max_length=255)
    notes: Optional[str] = None
    is_testable: bool = False


class SightingUpdate(BaseModel):
    observed_at: Optional[datetime] = None
    location: Optional[str] = Field(default=None, max_length=255)
    notes: Optional[str] = None
    is_testable: Optional[bool] = None


class SightingResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    plant_id: int
    observed_at: datetime
    location: Optional[str] = None
    notes: Optional[str] = None
    is_testable: bool
    created_at: datetime


class SightingCountsResponse(BaseModel):
    counts: Dict[int, int]


# === Flashcards ===
class Flashcard(BaseModel):
    plant_id: int
    slug: str
    scientific_name: str
    common_name: Optional[str] = None
    family: Optional[str] = None
    name_html: str
    display_name: str
    description: Optional[str] = None
    image_url: Optional[str] = None


class DeckResponse(BaseModel):
    session_id: UUID
    cards: List[Flashcard]
    count: int
    query: str = ""


class ViewResponse(BaseModel):
    plant_id: int
    count: int


class AnswerCreate(BaseModel):
    session_id: UUID
    plant_id: int
    is_correct: bool


class AnswerResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    session_id: Optional[UUID] = None
    plant_id: int
    is_correct: bool
    answered_at: datetime


class SessionSummaryResponse(BaseModel):
    session_id: UUID
    answered: int
    correct: int
    incorrect: int
    accuracy: int
    incorrect_plant_ids: List[int]


class PracticePlant(BaseModel):
    plant_id: int
    slug: str
    display_name: str
    total_attempts: int
    correct_attempts: int
    success_rate: float


# === Quiz ===
class CollectionCount(BaseModel):
    id: int
    name: str
    count: int


class QuizOverviewResponse(BaseModel):
    total: int
    favorites: Optional[int] = None
    collections: List[CollectionCount]
    query: str = ""


class QuizOption(BaseModel):
    plant_id: int
    display_name: str
    name_html: str


class QuizQuestion(BaseModel):
    plant_id: int
    image_url: Optional[str] = None
    options: List[QuizOption]


class QuizResponse(BaseModel):
    session_id: UUID
    questions: List[QuizQuestion]


class QuizAnswerCreate(BaseModel):
    session_id: UUID
    plant_id: int
    selected_plant_id: int


class QuizAnswerResponse(BaseModel):
    is_correct: bool
    correct_plant_id: int
    recorded: bool


# === Ops ===
class HealthResponse(BaseModel):
    status: str
    db: str
    storage: str
