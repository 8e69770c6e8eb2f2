from pydantic import BaseModel


class MeOut(BaseModel):
    api_key_id: str
    user_id: str
