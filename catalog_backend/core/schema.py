from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class _RequestModel(BaseModel):
    """Accepts both the dashboard's camelCase keys and snake_case."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")


class PipelineOptions(BaseModel):
    """Per-stage enable flags passed to the classification pipeline."""

    hard_categories: bool = True
    soft_categories: bool = True
    types: bool = True
    variants: bool = True
    embeddings: bool = False
    descriptions: bool = False
    reprocess_all: bool = False

    @classmethod
    def soft_categories_only(cls) -> "PipelineOptions":
        return cls(
            hard_categories=False,
            soft_categories=True,
            types=False,
            variants=False,
            embeddings=False,
            descriptions=False,
            reprocess_all=False,
        )

    def enabled_stages(self) -> list[str]:
        return [name for name, enabled in self.model_dump().items() if enabled]


class ReprocessRequest(_RequestModel):
    db_name: str | None = None
    categories: list[str] | None = None
    types: list[str] | None = Field(default=None, alias="type")
    soft_categories: list[str] | None = None
    target_category: str | None = None
    missing_soft_category_only: bool = False
    incremental_soft_categories: list[str] | None = None
    reprocess_hard_categories: bool | None = None
    reprocess_soft_categories: bool | None = None
    reprocess_types: bool | None = None
    reprocess_variants: bool | None = None
    reprocess_embeddings: bool | None = None
    reprocess_descriptions: bool | None = None
    reprocess_all: bool | None = None

    def pipeline_options(self) -> PipelineOptions:
        flags = {
            "hard_categories": self.reprocess_hard_categories,
            "soft_categories": self.reprocess_soft_categories,
            "types": self.reprocess_types,
            "variants": self.reprocess_variants,
            "embeddings": self.reprocess_embeddings,
            "descriptions": self.reprocess_descriptions,
            "reprocess_all": self.reprocess_all,
        }
        return PipelineOptions(**{key: value for key, value in flags.items() if value is not None})


class StopRequest(_RequestModel):
    db_name: str | None = None


class OnboardingRequest(_RequestModel):
    platform: str | None = None
    shopify_domain: str | None = None
    shopify_token: str | None = None
    woo_url: str | None = None
    woo_key: str | None = None
    woo_secret: str | None = None
    db_name: str | None = None
    categories: list[str] | None = None
    types: list[str] | None = Field(default=None, alias="type")
    soft_categories: list[str] | None = None
    sync_mode: str | None = None
    context: str | None = None
    explain: bool | None = None
    user_email: str | None = None
