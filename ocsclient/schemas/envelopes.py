from pydantic import BaseModel, ConfigDict, Field, field_validator

SUCCESS_STATUS_CODE = 100
SUCCESS_STATUS_STRING = "ok"


class Envelope(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    status_string: str = Field("", alias="status")
    status_code: int = Field(alias="statuscode")
    message: str = ""
    total_items: int = Field(0, alias="totalitems")
    items_per_page: int = Field(0, alias="itemsperpage")

    @field_validator("status_string", "message", mode="before")
    @classmethod
    def _null_text(cls, value):
        return "" if value is None else value

    @field_validator("total_items", "items_per_page", mode="before")
    @classmethod
    def _empty_count(cls, value):
        if value is None or value == "":
            return 0
        return value

    @property
    def is_ok(self) -> bool:
        return self.status_code == SUCCESS_STATUS_CODE or self.status_string.lower() == SUCCESS_STATUS_STRING
