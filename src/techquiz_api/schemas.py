from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, StrictInt, StrictStr, field_validator


class TechnologyCount(BaseModel):
    tech_length: int = Field(..., ge=0, description="Number of technologies in the catalog")


class GuessRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    tech_index: StrictInt = Field(..., alias="techIndex", ge=0, description="Technology index (>= 0)")
    guessed_name: StrictStr = Field(..., alias="guessedName", description="Guessed technology name")
    player_name: Optional[StrictStr] = Field(None, alias="playerName", description="Player name, defaults to guest")

    @field_validator("tech_index", mode="before")
    @classmethod
    def integral_float_to_int(cls, value: Any) -> Any:
        # JSON has one number type: 3.0 is the integer 3, 2.5 is not.
        if isinstance(value, float) and value.is_integer():
            return int(value)
        return value


class GuessResult(BaseModel):
    is_correct: bool
    tech_name: str
