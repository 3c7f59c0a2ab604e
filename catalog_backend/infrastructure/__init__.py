"""Infrastructure layer exports."""

from .catalog import (
    ClassificationPipeline,
    InMemoryProductCatalog,
    NoOpClassificationPipeline,
    PipelineContext,
    ProductCatalog,
    configure_classification_pipeline,
    configure_product_catalog,
    get_classification_pipeline,
    get_product_catalog,
)
from .gemini import GeminiRankingOracle
from .jobs import InMemoryJobStateRepository, JobStateRepository, JobStoreError
from .platforms import (
    HttpPlatformCredentialValidator,
    PlatformCredentialValidator,
    configure_credential_validator,
    get_credential_validator,
)
from .ranking import (
    RankingOracle,
    RankingOracleError,
    UnavailableRankingOracle,
    configure_ranking_oracle,
    get_ranking_oracle,
)
from .stores import InMemoryStoreRepository, StoreRepository

__all__ = [
    "ClassificationPipeline",
    "GeminiRankingOracle",
    "HttpPlatformCredentialValidator",
    "InMemoryJobStateRepository",
    "InMemoryProductCatalog",
    "InMemoryStoreRepository",
    "JobStateRepository",
    "JobStoreError",
    "NoOpClassificationPipeline",
    "PipelineContext",
    "PlatformCredentialValidator",
    "ProductCatalog",
    "RankingOracle",
    "RankingOracleError",
    "StoreRepository",
    "UnavailableRankingOracle",
    "configure_classification_pipeline",
    "configure_credential_validator",
    "configure_product_catalog",
    "configure_ranking_oracle",
    "get_classification_pipeline",
    "get_credential_validator",
    "get_product_catalog",
    "get_ranking_oracle",
]
