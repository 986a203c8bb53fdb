from fdcatalog.database.models.fd_issuer_model import (
    FDIssuer,
    FDIssuerDocument,
    FDScheme,
    RateSlab,
    PayoutFrequencyEnum,
    CompoundingFrequencyEnum,
    ON_MATURITY,
)
from fdcatalog.database.models.audit_log_model import AuditLog
