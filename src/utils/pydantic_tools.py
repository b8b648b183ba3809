from typing import Any

from pydantic import BaseModel, ConfigDict


class BaseModelWithMethods(BaseModel):
    """Base model with dict/json helpers. Fields may be populated by name or alias."""

    model_config = ConfigDict(populate_by_name=True)

    def to_json(self, **kwargs: Any) -> str:
        return self.model_dump_json(by_alias=True, **kwargs)

    def to_dict(self) -> dict[str, Any]:
        """Serialize for API responses: aliases applied, sets become lists."""
        return self.model_dump(by_alias=True, mode="json")
