"""
电子票生成服务

为每张票生成唯一票号，渲染二维码，并合成到对应票种的底图上。

票号格式：{程序前缀}-{票种大写}-{随机十六进制}，例如 ULES-REGULAR-1A2B3C4D。
随机部分来自 secrets，不与历史票号做重复检查（碰撞概率可忽略）。
"""
from __future__ import annotations

import logging
import re
import secrets
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path

from PIL import UnidentifiedImageError

from ticketing.integrations import imaging
from ticketing.services.units import Unit

logger = logging.getLogger(__name__)

_TICKET_TYPE_RE = re.compile(r"^[A-Za-z0-9_-]+$")


class ArtifactError(Exception):
    """单张票生成失败，只影响这一张票"""

    def __init__(self, message: str, *, identifier: str | None = None) -> None:
        super().__init__(message)
        self.identifier = identifier


class AssetError(ArtifactError):
    """底图缺失、不可读或无法解码"""


class RenderError(ArtifactError):
    """票号非法、二维码生成或图片合成失败"""


@dataclass(frozen=True)
class TicketArtifact:
    identifier: str
    image: bytes  # PNG


class ArtifactGenerator:
    """
    电子票生成器

    所有参数在构造时注入（见 ticketing.api.deps）。
    generate 为同步阻塞调用（文件读取 + 图片处理），由调用方放入线程池执行。
    """

    def __init__(
        self,
        *,
        assets_dir: Path,
        program_tag: str = "ULES",
        random_bytes: int = 4,
        code_size: int = 250,
        code_margin: int = 1,
        code_position: tuple[int, int] = (650, 100),
        render_code: Callable[..., bytes] = imaging.render_code,
        compose: Callable[[bytes, bytes, tuple[int, int]], bytes] = imaging.compose,
    ) -> None:
        self.assets_dir = Path(assets_dir)
        self.program_tag = program_tag
        self.random_bytes = random_bytes
        self.code_size = code_size
        self.code_margin = code_margin
        self.code_position = code_position
        self._render_code = render_code
        self._compose = compose

    def make_identifier(self, ticket_type: str) -> str:
        """生成票号，票种只允许字母、数字、下划线和连字符"""
        if not _TICKET_TYPE_RE.match(ticket_type or ""):
            raise RenderError(f"malformed identifier: invalid ticket type {ticket_type!r}")
        suffix = secrets.token_hex(self.random_bytes).upper()
        return f"{self.program_tag}-{ticket_type.upper()}-{suffix}"

    def base_image_path(self, ticket_type: str) -> Path:
        """底图路径只由票种决定"""
        return self.assets_dir / f"{ticket_type}-ticket.png"

    def generate(self, unit: Unit) -> TicketArtifact:
        """
        生成单张电子票

        Raises:
            RenderError: 票号非法、二维码或合成失败
            AssetError: 底图缺失或损坏
        """
        identifier = self.make_identifier(unit.ticket_type)

        try:
            code_png = self._render_code(identifier, size=self.code_size, margin=self.code_margin)
        except Exception as e:
            raise RenderError(f"failed to render code: {e}", identifier=identifier) from e

        path = self.base_image_path(unit.ticket_type)
        try:
            base_png = path.read_bytes()
        except OSError as e:
            raise AssetError(f"base image not readable: {path}", identifier=identifier) from e

        try:
            image = self._compose(base_png, code_png, self.code_position)
        except UnidentifiedImageError as e:
            raise AssetError(f"base image is not a valid image: {path}", identifier=identifier) from e
        except Exception as e:
            raise RenderError(f"failed to compose ticket: {e}", identifier=identifier) from e

        logger.debug(f"Generated ticket {identifier} for {unit.label}")
        return TicketArtifact(identifier=identifier, image=image)
