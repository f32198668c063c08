"""
Dependency Injection Providers for the database layer

Routers should import these through api.dependencies.
"""

from typing import Annotated

from fastapi import Depends

from marketplace.infrastructure.db.database import DatabaseManager, get_db_manager


# Type alias for the startup-built database manager
DatabaseDep = Annotated[DatabaseManager, Depends(get_db_manager)]
