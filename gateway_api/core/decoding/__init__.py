"""Decoding layer - Payloads y frames de imagen."""

from .image_frame import ImageFrame, decode_frame, encode_frame
from .payload_decoder import decode_payload

__all__ = ["ImageFrame", "decode_frame", "encode_frame", "decode_payload"]
