"""
Output models for structured extraction.

Each registered model carries the JSON schema sent to the provider (derived
from the pydantic model) and the runtime validation applied to the reply.
"""
from typing import Dict, List, Type

from pydantic import BaseModel, Field


class Character(BaseModel):
    """A single Star Wars character"""

    name: str = Field(..., description="The full name of the Star Wars character.")
    affiliation: str = Field(
        ...,
        description="The primary faction (e.g., Rebel Alliance, Galactic Empire, Jedi Order)."
    )
    species: str = Field(..., description="The biological species of the character.")
    homeworld: str = Field(..., description="The home planet of the character.")
    force_sensitive: bool = Field(
        ...,
        description="True if the character can use the Force, false otherwise."
    )


class CharacterRoster(BaseModel):
    """Characters from one era of the Star Wars galaxy"""

    era: str = Field(
        ...,
        description=(
            "The primary era of the Star Wars galaxy being described "
            "(e.g., Galactic Civil War, Old Republic)."
        )
    )
    characters: List[Character] = Field(
        ...,
        min_length=3,
        max_length=3,
        description="An array containing exactly three character objects."
    )


def build_roster_prompt(era: str = "Galactic Civil War") -> str:
    return (
        "Extract structured Star Wars character information.\n"
        "Return exactly 3 characters only.\n"
        "Follow the schema strictly.\n"
        f'The era should be "{era}".\n'
    )


class ExtractionSchema:
    """A named output model plus the prompt used when the caller sends none"""

    def __init__(self, name: str, output_model: Type[BaseModel], default_prompt: str):
        self.name = name
        self.output_model = output_model
        self.default_prompt = default_prompt


EXTRACTION_SCHEMAS: Dict[str, ExtractionSchema] = {
    "star-wars-characters": ExtractionSchema(
        name="star-wars-characters",
        output_model=CharacterRoster,
        default_prompt=build_roster_prompt(),
    ),
}
