# ============================================================================
# Common Response Schemas
# ============================================================================
from pydantic import BaseModel
from typing import Optional
from datetime import datetime

class BaseResponse(BaseModel):
    success: bool = True
    message: Optional[str] = None

class HealthCheckResponse(BaseModel):
    status: str
    app: str
    timestamp: datetime
