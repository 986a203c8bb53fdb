from fdcatalog.schemas.fd_scheme_schema import (
    IssuerCreateRequest,
    IssuerUpdateRequest,
    SchemeUpdateRequest,
    SlabUpdateRequest,
    RateRequest,
    RateBonuses,
    RateResult,
    MessageResponse,
)
