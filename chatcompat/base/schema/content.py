"""
Structured message content: text parts and image references.

A message's content is either a plain string or an ordered tuple of
:class:`ContentPart` values. Image parts reference an :class:`ImageUrl`, which
is either a remote URL or an inline ``data:`` URL carrying base64 image bytes.
"""
from __future__ import annotations

import base64
import os
from dataclasses import dataclass, replace
from typing import Literal, Optional, Union

from pydantic import BaseModel, model_validator

from ..errors import InvalidValue, MissingField
from .validation import FROZEN, validated

ImageDetail = Literal["auto", "low", "high"]


class ImageUrl(BaseModel):
    """Reference to an image, remote (``https://``) or inline (``data:``)."""

    model_config = FROZEN

    url: str
    detail: Optional[ImageDetail] = None

    @classmethod
    def builder(cls) -> "ImageUrlBuilder":
        return ImageUrlBuilder()

    @classmethod
    def from_url(cls, url: str) -> "ImageUrl":
        return cls.builder().with_url(url).build()

    @classmethod
    def from_bytes(cls, data: bytes, suffix: str) -> "ImageUrl":
        """Inline raw image bytes as ``data:image/<suffix>;base64,...``."""
        return cls.builder().with_image_bytes(data, suffix).build()

    @classmethod
    def from_file(cls, path: Union[str, "os.PathLike[str]"]) -> "ImageUrl":
        """Read a local image file and inline it; the extension names the format.

        Raises:
            InvalidValue: when the path has no file extension.
            OSError: when the file cannot be read.
        """
        suffix = os.path.splitext(os.fspath(path))[1].lstrip(".").lower()
        if not suffix:
            raise InvalidValue("path", "image file has no extension")
        with open(path, "rb") as fh:
            return cls.from_bytes(fh.read(), suffix)

    def is_inline(self) -> bool:
        return self.url.startswith("data:")


@dataclass(frozen=True)
class ImageUrlBuilder:
    url: Optional[str] = None
    detail: Optional[str] = None

    def with_url(self, url: str) -> "ImageUrlBuilder":
        return replace(self, url=url)

    def with_image_bytes(self, data: bytes, suffix: str) -> "ImageUrlBuilder":
        encoded = base64.b64encode(bytes(data)).decode("ascii")
        return replace(self, url=f"data:image/{suffix.lstrip('.').lower()};base64,{encoded}")

    def with_detail(self, detail: str) -> "ImageUrlBuilder":
        return replace(self, detail=detail)

    def build(self) -> ImageUrl:
        if self.url is None:
            raise MissingField("url")
        if not self.url.strip():
            raise InvalidValue("url", "must be non-empty")
        return validated(ImageUrl, {"url": self.url, "detail": self.detail})


class ContentPart(BaseModel):
    """One element of structured message content.

    Exactly one payload is present: ``text`` for ``type == "text"`` and
    ``image_url`` for ``type == "image_url"``.
    """

    model_config = FROZEN

    type: Literal["text", "image_url"]
    text: Optional[str] = None
    image_url: Optional[ImageUrl] = None

    @model_validator(mode="after")
    def _check_payload(self) -> "ContentPart":
        if self.type == "text" and (self.text is None or self.image_url is not None):
            raise ValueError("text part requires 'text' and no 'image_url'")
        if self.type == "image_url" and (self.image_url is None or self.text is not None):
            raise ValueError("image_url part requires 'image_url' and no 'text'")
        return self

    @classmethod
    def of_text(cls, text: str) -> "ContentPart":
        return cls(type="text", text=text)

    @classmethod
    def of_image(cls, image: Union[ImageUrl, str]) -> "ContentPart":
        url = image if isinstance(image, ImageUrl) else ImageUrl.from_url(image)
        return cls(type="image_url", image_url=url)

    def is_empty(self) -> bool:
        return self.type == "text" and not self.text


__all__ = ["ImageUrl", "ImageUrlBuilder", "ContentPart", "ImageDetail"]
