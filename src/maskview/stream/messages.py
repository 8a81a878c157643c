"""
Stream Message Schemas
======================

Pydantic models for image messages received over the websocket.

Two transports are supported, chosen at subscription time:

Raw transport:
    {
        "frame_id": 1234,
        "timestamp": 1707321234.567,
        "width": 640,
        "height": 480,
        "encoding": "bgra8",
        "step": 2560,
        "is_bigendian": false,
        "data": "<base64 pixel payload>"
    }

Compressed transport:
    {
        "frame_id": 1234,
        "timestamp": 1707321234.567,
        "format": "png",
        "data": "<base64 PNG or JPEG>"
    }

Example:
    message = ImageMessage.model_validate_json(raw)
    print(f"Received {message.encoding} frame {message.frame_id}")
"""

from pydantic import BaseModel, Field


class ImageMessage(BaseModel):
    """Uncompressed image, the payload is packed pixel rows."""

    frame_id: int = Field(..., ge=0, description="Sequence number from source")
    timestamp: float = Field(..., ge=0, description="UNIX capture time in seconds")
    width: int = Field(..., ge=0, description="Image width in pixels")
    height: int = Field(..., ge=0, description="Image height in pixels")
    encoding: str = Field(..., min_length=1, description="Pixel encoding tag")
    step: int = Field(..., ge=0, description="Row stride in bytes")
    is_bigendian: bool = Field(default=False, description="Byte order of 16-bit data")
    data: str = Field(..., description="Base64-encoded pixel payload")


class CompressedImageMessage(BaseModel):
    """Compressed image, the payload is a complete PNG or JPEG file."""

    frame_id: int = Field(..., ge=0, description="Sequence number from source")
    timestamp: float = Field(..., ge=0, description="UNIX capture time in seconds")
    format: str = Field(default="png", description="Compression format (png, jpeg)")
    data: str = Field(..., description="Base64-encoded compressed image")
