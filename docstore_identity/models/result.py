"""
Operation result returned by every write.
"""
from typing import Optional

from pydantic import BaseModel, Field


class IdentityError(BaseModel):
    """A single failure description."""
    code: str = Field(..., description="Status name, e.g. 'Conflict'")
    description: str = Field(..., description="Human readable message")
    status_code: Optional[int] = Field(None, description="HTTP-like status code")


class IdentityResult(BaseModel):
    """Success or failure of a store write."""
    succeeded: bool
    errors: list[IdentityError] = Field(default_factory=list)

    @classmethod
    def success(cls) -> "IdentityResult":
        return cls(succeeded=True)

    @classmethod
    def failed(cls, *errors: IdentityError) -> "IdentityResult":
        return cls(succeeded=False, errors=list(errors))

    @property
    def status_code(self) -> Optional[int]:
        """Status code of the first error, if any."""
        return self.errors[0].status_code if self.errors else None

    def __str__(self) -> str:
        if self.succeeded:
            return "Succeeded"
        return "Failed : " + ",".join(error.code for error in self.errors)
