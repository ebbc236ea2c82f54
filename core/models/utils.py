"""ID generation and shared model base."""

import secrets
import uuid

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


def gen_id(prefix: str) -> str:
    """Generate prefixed IDs: evt_xxx, ses_xxx"""
    return f"{prefix}{secrets.token_urlsafe(12)}"


def new_invocation_id() -> str:
    return f"e-{uuid.uuid4()}"


class WireModel(BaseModel):
    """Base for records whose wire shape uses camelCase field names."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)
