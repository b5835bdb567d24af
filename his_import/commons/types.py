import codecs
from typing import Any, Dict, List

from pydantic import BaseModel, Field, field_validator


class AppCfg(BaseModel):
    name: str = "his-import"


class PathsCfg(BaseModel):
    logs_root: str = "logs"


class LoggingCfg(BaseModel):
    level: str = "INFO"
    retention: str = "14 days"
    console: bool = True


class ParserCfg(BaseModel):
    default_vendor: str = "auto"
    legacy_encoding: str = "cp950"
    warn_on_coerced_fields: bool = True
    validate_output: bool = False

    @field_validator("legacy_encoding")
    @classmethod
    def _known_codec(cls, v: str):
        try:
            codecs.lookup(v)
        except LookupError as ex:
            raise ValueError(f"unknown codec: {v}") from ex
        return v


class LimitsCfg(BaseModel):
    max_upload_mb: int = Field(default=50, gt=0)


class Settings(BaseModel):
    app: AppCfg = AppCfg()
    paths: PathsCfg = PathsCfg()
    logging: LoggingCfg = LoggingCfg()
    parser: ParserCfg = ParserCfg()
    limits: LimitsCfg = LimitsCfg()

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Settings":
        return cls.model_validate(data or {})


class VendorInfo(BaseModel):
    code: str
    name: str
    description: str
    formats: List[str]
