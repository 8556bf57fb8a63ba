from pydantic import BaseModel, ConfigDict, model_validator


class ExtractionResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    success: bool
    text: str = ""
    error: str = ""

    @model_validator(mode="after")
    def check_failure_shape(self):
        # Failed extractions never carry text and always explain why
        if not self.success and (self.text or not self.error):
            raise ValueError("failed extraction must have empty text and an error")
        return self

    @classmethod
    def ok(cls, text: str) -> "ExtractionResult":
        return cls(success=True, text=text)

    @classmethod
    def failure(cls, error: str) -> "ExtractionResult":
        return cls(success=False, error=error or "Unknown extraction error")
