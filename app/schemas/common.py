from pydantic import BaseModel


class MessageResponse(BaseModel):
    """Simple message response"""
    message: str

    model_config = {
        "json_schema_extra": {
            "example": {
                "message": "Operation completed successfully"
            }
        }
    }


class SweepResponse(BaseModel):
    """Result of a retention sweep"""
    success: bool
    message: str
    deleted: int = 0
