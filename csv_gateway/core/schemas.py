from typing import Optional, List

from pydantic import BaseModel, ConfigDict, Field


# =========================
# DATABASE
# =========================
class DatabaseConfig(BaseModel):
    driver: str = "mysql+aiomysql"
    host: Optional[str] = None
    port: Optional[int] = Field(default=3306, ge=1, le=65535)
    username: Optional[str] = None
    password: Optional[str] = None
    name: str = Field(min_length=1)

    model_config = ConfigDict(frozen=True)

    @property
    def is_mysql(self) -> bool:
        return self.driver.split("+", 1)[0] in ("mysql", "mariadb")


# =========================
# QUERY
# =========================
class QueryDefinition(BaseModel):
    name: str
    # The config file calls it "query"
    statement: str = Field(alias="query", min_length=1)

    model_config = ConfigDict(frozen=True, populate_by_name=True)


# =========================
# CONFIG FILE
# =========================
class GatewayConfig(BaseModel):
    database: DatabaseConfig
    queries: List[QueryDefinition] = []

    model_config = ConfigDict(frozen=True)
