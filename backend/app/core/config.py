"""
应用配置模块

使用 Pydantic Settings 管理所有环境变量和配置。
配置从项目根目录的 .env 文件读取，支持类型验证和默认值。

配置分组：
- 应用基础配置（API 前缀、环境、CORS、Sentry）
- 数据库（PostgreSQL）
- Stripe（支付、Webhook 签名密钥）
- LINE（Messaging API、LINE Login、LIFF、Rich Menu）
- 事件账本（锁超时）
"""
import warnings  # 用于发出警告
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

    Raises:
        ValueError: 当输入格式不正确时
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
    ENVIRONMENT: Literal["local", "staging", "production"] = "local"
    GIT_COMMIT: str = "local"  # 部署版本（健康检查返回）

    BACKEND_CORS_ORIGINS: Annotated[
        list[AnyUrl] | str, BeforeValidator(parse_cors)
    ] = []

    @computed_field  # type: ignore[prop-decorator]
    @property
    def all_cors_origins(self) -> list[str]:
        """CORS 允许的源列表（去除尾部斜杠）"""
        return [str(origin).rstrip("/") for origin in self.BACKEND_CORS_ORIGINS]

    PROJECT_NAME: str = "oshaberi-backend"
    SENTRY_DSN: HttpUrl | None = None

    POSTGRES_SERVER: str = "localhost"
    POSTGRES_PORT: int = 5432
    POSTGRES_USER: str = "postgres"
    POSTGRES_PASSWORD: str = ""
    POSTGRES_DB: str = ""

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

    # Stripe 配置
    STRIPE_SECRET_KEY: str | None = None  # API 密钥（sk_...）
    STRIPE_WEBHOOK_SECRET: str | None = None  # 生产 Webhook 签名密钥（whsec_...）
    STRIPE_CLI_WEBHOOK_SECRET: str | None = None  # Stripe CLI 转发用签名密钥
    STRIPE_WEBHOOK_TOLERANCE_SECONDS: int = 300  # 签名时间戳容差（秒）
    STRIPE_PRICE_ID: str | None = None  # 订阅价格 ID
    PUBLIC_ORIGIN: str = "https://www.oshaberiaiko.com"  # Checkout 回跳地址的站点根

    # LINE 配置
    LINE_API_BASE_URL: str = "https://api.line.me"
    LINE_CHANNEL_ACCESS_TOKEN: str | None = None  # Messaging API 访问令牌
    LINE_LOGIN_CHANNEL_ID: str | None = None  # LINE Login 渠道 ID（ID Token 的 aud）
    RICHMENU_ID_PREMIUM: str = ""  # 付费用户菜单
    RICHMENU_ID_REGULAR: str = ""  # 普通用户菜单
    LIFF_ID: str = ""
    LIFF_ID_PAY: str = ""
    LIFF_ID_MYPAGE: str = ""

    ADMIN_KEY: str | None = None  # 管理接口密钥

    # 事件账本：锁定超过该秒数且未完成的事件可被重投递重新领取
    LEDGER_LOCK_TTL_SECONDS: int = 300

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
        self._check_default_secret("POSTGRES_PASSWORD", self.POSTGRES_PASSWORD)
        self._check_default_secret("STRIPE_WEBHOOK_SECRET", self.STRIPE_WEBHOOK_SECRET)
        self._check_default_secret("ADMIN_KEY", self.ADMIN_KEY)

        return self


# 创建全局配置实例，整个应用共享
settings = Settings()  # type: ignore
