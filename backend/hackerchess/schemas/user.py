from pydantic import BaseModel, ConfigDict, Field, SecretStr, StrictStr


class Credentials(BaseModel):
    model_config = ConfigDict(extra="ignore")

    username: StrictStr = Field(..., min_length=1, max_length=255)
    password: SecretStr = Field(..., min_length=1)


class PublicUser(BaseModel):
    username: str


class StatusOut(BaseModel):
    ok: bool = True
    mode: str


class OkOut(BaseModel):
    ok: bool = True
