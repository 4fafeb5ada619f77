"""Request descriptions shared by nodes and adapters."""

from collections.abc import Callable
from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field

HttpMethod = Literal["GET", "POST", "PUT", "PATCH", "DELETE"]

JSON_CONTENT_TYPE = "application/json"


class ResponseShape(str, Enum):
    """What an operation hands back to its caller.

    OBJECT: a single parsed object
    COLLECTION: an ordered list of parsed objects
    RAW: the response body as bytes, for endpoints without a schema
    NONE: nothing, for endpoints answering 204 No Content
    """

    OBJECT = "object"
    COLLECTION = "collection"
    RAW = "raw"
    NONE = "none"


class RequestSpec(BaseModel):
    """A fully resolved HTTP call, ready for an adapter to execute."""

    method: HttpMethod
    url: str
    headers: dict[str, str] = Field(default_factory=dict)
    body: bytes | None = None
    query: dict[str, Any] = Field(default_factory=dict)


class Operation(BaseModel):
    """Describes one verb at one node of the resource tree.

    A single executor interprets every Operation, so endpoints differ only
    by the data held here.

    Attributes:
        method: HTTP verb
        response_shape: How the response body is handed back
        response_model: Pydantic model class or callable turning one decoded
            JSON value into a result object. None returns decoded JSON as is.
        body_required: Whether a request body must be supplied
        accept: Value of the Accept header, None to send none
        content_type: Content type used to serialize request bodies
        description: Human-readable summary
    """

    model_config = ConfigDict(arbitrary_types_allowed=True, frozen=True)

    method: HttpMethod
    response_shape: ResponseShape = ResponseShape.OBJECT
    response_model: Any = None
    body_required: bool = False
    accept: str | None = JSON_CONTENT_TYPE
    content_type: str = JSON_CONTENT_TYPE
    description: str = ""

    @property
    def factory(self) -> Callable[[Any], Any] | None:
        """The callable that builds one result object from decoded JSON."""
        model = self.response_model
        if model is None:
            return None
        if isinstance(model, type) and issubclass(model, BaseModel):
            return model.model_validate
        return model
