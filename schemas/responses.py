from pydantic import BaseModel


class IdentResponse(BaseModel):
    # Bearer token for /poll, the only secret handed to a peer
    token: str
