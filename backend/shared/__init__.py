"""
Shared module for cross-cutting concerns of the pricing backend.

STRUCTURE:
- shared.config: Configuration
  - settings.py: Environment config (pydantic-settings)
  - logging.py: Structured logging
  - constants.py: Zones, service types, promotion rule enums, money constants

- shared.infrastructure: Database and evaluation context
  - db.py: SQLAlchemy engine/sessions, safe_commit()
  - correlation.py: Correlation id for log records of one evaluation
  - clock.py: Injectable time source

- shared.utils: Utilities
  - exceptions.py: Domain exceptions with auto-logging
  - money.py: Decimal helpers (quantize, percentage discount)

IMPORT EXAMPLES:
    from shared.config.settings import settings
    from shared.config.constants import Zone, ServiceType
    from shared.infrastructure.db import get_db_context, safe_commit
    from shared.utils.exceptions import NotFoundError, MissingSelectionError
"""
