from fdcatalog.core.config import Settings, settings
from fdcatalog.core.security import create_access_token, decode_token
