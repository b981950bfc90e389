from pydantic import BaseModel, ConfigDict, Field

from dub_schedule.services.schedule_types import DubPrefixStyle, FilterMode


class ScheduleItemSchema(BaseModel):
    """Schedule entry in the host's wire format"""
    model_config = ConfigDict(populate_by_name=True)

    media_id: int = Field(..., alias="mediaId", description="AniList media ID")
    title: str = Field(..., description="Display title, dub entries carry the dub marker")
    time: str = Field("", description="24-hour time of day (HH:MM)")
    date_time: str | None = Field(None, alias="dateTime", description="ISO8601 UTC airing time")
    image: str | None = Field(None, description="Cover image URL")
    episode_number: int = Field(..., alias="episodeNumber", description="Episode number")
    is_movie: bool = Field(False, alias="isMovie")
    is_season_finale: bool = Field(False, alias="isSeasonFinale")


class ScheduleRenderRequest(BaseModel):
    """Schedule about to be rendered by the host"""
    items: list[ScheduleItemSchema] | None = Field(default=None, description="Host schedule entries (sub entries, possibly mixed with dub entries)")


class ScheduleRenderResponse(BaseModel):
    """Schedule to render in place of the original list"""
    filter_mode: FilterMode
    dub_prefix_style: DubPrefixStyle
    total_items: int
    items: list[ScheduleItemSchema]


class DubScheduleResponse(BaseModel):
    """Current dub snapshot"""
    generation: int
    built_at: str | None = Field(None, description="ISO8601 time the snapshot was committed")
    dub_prefix_style: DubPrefixStyle | None
    total_items: int
    items: list[ScheduleItemSchema]


class PreferencesSchema(BaseModel):
    """User display preferences"""
    filter_mode: FilterMode = Field(..., description="One of all, dub, sub, prefer-dub")
    dub_prefix_style: DubPrefixStyle = Field(..., description="One of icon, bracket, icon-only")


class PreferencesUpdate(BaseModel):
    """Partial preference update"""
    filter_mode: FilterMode | None = None
    dub_prefix_style: DubPrefixStyle | None = None


class PreferencesResponse(PreferencesSchema):
    refresh_scheduled: bool = False
    messages: list[str] = Field(default_factory=list, description="Human-readable notices about the change")

