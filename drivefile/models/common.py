from typing import Literal

from pydantic import BaseModel


class StatusResponse(BaseModel):
    authenticated: bool
    transport: str
    message: str


# Failure variants produced at the network-call boundary


class UpstreamFailure(BaseModel):
    kind: Literal["upstream"] = "upstream"
    code: int
    message: str


class GenericFailure(BaseModel):
    kind: Literal["generic"] = "generic"
    message: str


class UnknownFailure(BaseModel):
    kind: Literal["unknown"] = "unknown"
    raw: str


Failure = UpstreamFailure | GenericFailure | UnknownFailure
