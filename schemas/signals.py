from pydantic import BaseModel, ConfigDict, Field, TypeAdapter
from typing import Annotated, Any, List, Optional, Tuple, Union

MLineIndex = Annotated[int, Field(ge=0, le=65535)]

# (candidate, sdp mid, sdp m-line index). An empty candidate marks end-of-candidates.
IceCandidate = Tuple[str, Optional[str], Optional[MLineIndex]]


class _Signal(BaseModel):
    # Serialized as an externally tagged value: {"SetSDP": "..."}
    model_config = ConfigDict(extra="forbid", validate_by_name=True, validate_by_alias=True, frozen=True)

    def can_send(self) -> bool:
        """Whether a peer may send this signal to be forwarded to the other peer."""
        return False


class SetSDP(_Signal):
    sdp: str = Field(alias="SetSDP")

    def can_send(self) -> bool:
        return True


class AddCandidate(_Signal):
    candidate: IceCandidate = Field(alias="AddCandidate")

    def can_send(self) -> bool:
        return True

    @property
    def is_end_of_candidates(self) -> bool:
        return self.candidate[0] == ""


class JoinRoom(_Signal):
    code: str = Field(alias="JoinRoom")


class ConnectAt(_Signal):
    at: int = Field(alias="ConnectAt")


class NextPoll(_Signal):
    at: int = Field(alias="NextPoll")


Signal = Union[SetSDP, AddCandidate, JoinRoom, ConnectAt, NextPoll]

SIGNAL_LIST = TypeAdapter(List[Signal])


def parse_signals(data: Any) -> List[Signal]:
    """Validate a decoded JSON body, wire names only. Raises pydantic.ValidationError."""
    return SIGNAL_LIST.validate_python(data, by_alias=True, by_name=False)


def dump_signals(signals: List[Signal]) -> list:
    return SIGNAL_LIST.dump_python(signals, by_alias=True, mode="json")
