"""
应用配置模块

使用 Pydantic Settings 管理所有环境变量和配置。
配置从项目根目录的 .env 文件读取，支持类型验证和默认值。

注意：业务组件（签名校验、票据生成、邮件发送、账本）不直接读取 settings，
而是在 ticketing.api.deps 中构造时显式注入所需的配置值。
"""
import warnings  # 用于发出警告
from pathlib import Path
from typing import Annotated, Any, Literal  # 类型注解工具

from pydantic import (
    AnyUrl,  # URL 类型验证
    BeforeValidator,  # 字段验证前的转换器
    HttpUrl,  # HTTP URL 类型验证
    PostgresDsn,  # PostgreSQL 连接字符串验证
    computed_field,  # 计算字段装饰器
    model_validator,  # 模型验证器装饰器
)
from pydantic_settings import BaseSettings, SettingsConfigDict  # 配置管理
from typing_extensions import Self  # 用于类型注解中引用自身类型


def parse_cors(v: Any) -> list[str] | str:
    """
    解析 CORS 配置值

    支持两种格式：
    1. 逗号分隔的字符串："http://localhost:3000,http://localhost:3001"
    2. 列表格式：["http://localhost:3000", "http://localhost:3001"]
    """
    if isinstance(v, str) and not v.startswith("["):
        return [i.strip() for i in v.split(",") if i.strip()]
    elif isinstance(v, list | str):
        return v
    raise ValueError(v)


class Settings(BaseSettings):
    """
    应用配置类

    配置来源优先级：
    1. 环境变量（最高优先级）
    2. .env 文件
    3. 代码中的默认值（最低优先级）
    """
    model_config = SettingsConfigDict(
        # 使用项目根目录的 .env 文件（backend/ 目录的上一级）
        env_file="../.env",
        env_ignore_empty=True,  # 忽略空的环境变量
        extra="ignore",  # 忽略未定义的额外字段
    )
    API_V1_STR: str = "/api/v1"  # API 版本前缀
    PROJECT_NAME: str = "ULES Tickets"
    ENVIRONMENT: Literal["local", "staging", "production"] = "local"
    LOG_LEVEL: str = "INFO"  # 日志级别

    BACKEND_CORS_ORIGINS: Annotated[
        list[AnyUrl] | str, BeforeValidator(parse_cors)
    ] = []

    @computed_field  # type: ignore[prop-decorator]
    @property
    def all_cors_origins(self) -> list[str]:
        """CORS 允许的源（去除尾部斜杠）"""
        return [str(origin).rstrip("/") for origin in self.BACKEND_CORS_ORIGINS]

    SENTRY_DSN: HttpUrl | None = None

    POSTGRES_SERVER: str = "localhost"
    POSTGRES_PORT: int = 5432
    POSTGRES_USER: str = "postgres"
    POSTGRES_PASSWORD: str = ""
    POSTGRES_DB: str = "ules_tickets"

    @computed_field  # type: ignore[prop-decorator]
    @property
    def SQLALCHEMY_DATABASE_URI(self) -> PostgresDsn:
        return PostgresDsn.build(
            scheme="postgresql+psycopg",
            username=self.POSTGRES_USER,
            password=self.POSTGRES_PASSWORD,
            host=self.POSTGRES_SERVER,
            port=self.POSTGRES_PORT,
            path=self.POSTGRES_DB,
        )

    # Paystack 支付配置
    PAYSTACK_SECRET_KEY: str | None = None  # 同时用于 API 调用和 webhook 签名校验
    PAYSTACK_BASE_URL: str = "https://api.paystack.co"
    PAYSTACK_CALLBACK_URL: str = "https://ticketgenerator-rho.vercel.app/pages/success.html"
    PAYSTACK_SUCCESS_EVENT: str = "charge.success"  # 触发出票的事件类型

    # SMTP 邮件服务器配置（用于发送电子票）
    SMTP_TLS: bool = True  # 是否使用 STARTTLS
    SMTP_SSL: bool = False  # 是否使用 SSL
    SMTP_PORT: int = 587  # SMTP 端口
    SMTP_HOST: str | None = None  # SMTP 服务器地址
    SMTP_USER: str | None = None  # SMTP 用户名
    SMTP_PASSWORD: str | None = None  # SMTP 密码
    EMAILS_FROM_EMAIL: str = "tickets@ules.local"  # 发件人邮箱
    EMAILS_FROM_NAME: str | None = "ULES Dinner"  # 发件人名称
    MAIL_MOCK: bool = False  # 模拟模式：只记录日志不真正发信（本地开发）
    MAIL_SEND_TIMEOUT_SECONDS: float = 30.0  # 单封邮件发送超时

    # 电子票生成配置
    TICKET_ASSETS_DIR: Path = Path("assets")  # 底图目录，文件名为 {type}-ticket.png
    TICKET_PROGRAM_TAG: str = "ULES"  # 票号前缀
    TICKET_ID_RANDOM_BYTES: int = 4  # 票号随机部分字节数（十六进制后为 8 个字符）
    TICKET_CODE_SIZE: int = 250  # 二维码边长（像素）
    TICKET_CODE_MARGIN: int = 1  # 二维码留白（模块数）
    TICKET_CODE_LEFT: int = 650  # 二维码在底图上的横向偏移
    TICKET_CODE_TOP: int = 100  # 二维码在底图上的纵向偏移
    TICKET_EMAIL_SUBJECT: str = "Your ULES Dinner Ticket: {display_name}"

    def _check_default_secret(self, var_name: str, value: str | None) -> None:
        """
        检查敏感配置是否使用了默认值 "changethis"

        本地环境只警告，其他环境直接报错。
        """
        if value == "changethis":
            message = (
                f'The value of {var_name} is "changethis", '
                "for security, please change it, at least for deployments."
            )
            if self.ENVIRONMENT == "local":
                warnings.warn(message, stacklevel=1)
            else:
                raise ValueError(message)

    @model_validator(mode="after")
    def _enforce_non_default_secrets(self) -> Self:
        self._check_default_secret("PAYSTACK_SECRET_KEY", self.PAYSTACK_SECRET_KEY)
        self._check_default_secret("POSTGRES_PASSWORD", self.POSTGRES_PASSWORD)
        self._check_default_secret("SMTP_PASSWORD", self.SMTP_PASSWORD)
        return self


# 创建全局配置实例，整个应用共享
settings = Settings()  # type: ignore
