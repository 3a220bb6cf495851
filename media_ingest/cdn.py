"""
CDN 分发 URL 解析

单一规则：相同输入必须得到相同 URL。

路由是一张有序规则表，自上而下求值，第一条命中的规则生效；
部分分区（Documents）会覆盖按资产类型的路由，因此顺序不可调整。
全部规则都不命中时抛出 UnsupportedRouteError，不存在隐式兜底。
"""
from __future__ import annotations

from dataclasses import dataclass
from functools import lru_cache
from typing import Callable, Mapping, Optional

from media_ingest.constants import AssetType, ContentSection
from media_ingest.core.config import Settings, settings
from media_ingest.errors import UnsupportedRouteError, ValidationError
from media_ingest.naming import get_blob_container_name


@dataclass(frozen=True)
class CdnEndpoints:
    """各规则对应的分发端点基础 URL（按部署环境注入）"""
    documents: str
    images: str
    videos: str
    media: str
    music: str

    @classmethod
    def from_settings(cls, config: Settings) -> "CdnEndpoints":
        return cls(
            documents=config.cdn_endpoint_documents,
            images=config.cdn_endpoint_images,
            videos=config.cdn_endpoint_videos,
            media=config.cdn_endpoint_media,
            music=config.cdn_endpoint_music,
        )

    def as_mapping(self) -> dict[str, str]:
        return {
            "documents": self.documents,
            "images": self.images,
            "videos": self.videos,
            "media": self.media,
            "music": self.music,
        }


RoutePredicate = Callable[[ContentSection, Optional[AssetType]], bool]


@dataclass(frozen=True)
class RouteRule:
    name: str
    predicate: RoutePredicate
    endpoint: str


DEFAULT_ROUTE_RULES: tuple[RouteRule, ...] = (
    RouteRule("documents_section", lambda section, asset_type: section == ContentSection.DOCUMENTS, "documents"),
    RouteRule("images_asset", lambda section, asset_type: asset_type == AssetType.IMAGES, "images"),
    RouteRule("video_asset", lambda section, asset_type: asset_type == AssetType.VIDEO, "videos"),
    RouteRule("media_asset", lambda section, asset_type: asset_type == AssetType.MEDIA, "media"),
    RouteRule("music_section", lambda section, asset_type: section == ContentSection.MUSIC, "music"),
)


def _append_query(url: str, query_params: Optional[str]) -> str:
    if query_params and query_params.strip():
        query = query_params.strip().lstrip("?")
        if query:
            return f"{url}?{query}"
    return url


class CdnUrlResolver:
    """(section, asset_type, container, blob) -> 公开分发 URL"""

    def __init__(
        self,
        endpoints: CdnEndpoints | Mapping[str, str],
        mock_storage_url: str,
        rules: tuple[RouteRule, ...] = DEFAULT_ROUTE_RULES,
    ):
        mapping = endpoints.as_mapping() if isinstance(endpoints, CdnEndpoints) else dict(endpoints)
        self.endpoints = {key: value.strip().rstrip("/") for key, value in mapping.items() if value}
        self.mock_storage_url = mock_storage_url.strip().rstrip("/")
        self.rules = tuple(rules)

    @classmethod
    def from_settings(cls, config: Settings) -> "CdnUrlResolver":
        return cls(CdnEndpoints.from_settings(config), config.mock_blob_storage_url)

    def match_rule(self, section: ContentSection, asset_type: Optional[AssetType]) -> RouteRule:
        """返回第一条命中的规则，全部不命中时抛出 UnsupportedRouteError"""
        section = ContentSection(section)
        asset_type = AssetType(asset_type) if asset_type is not None else None
        for rule in self.rules:
            if rule.predicate(section, asset_type):
                return rule
        raise UnsupportedRouteError(section, asset_type)

    def endpoint_for(self, section: ContentSection, asset_type: Optional[AssetType]) -> str:
        rule = self.match_rule(section, asset_type)
        endpoint = self.endpoints.get(rule.endpoint)
        if not endpoint:
            raise UnsupportedRouteError(
                section,
                asset_type,
                message=f"CDN endpoint '{rule.endpoint}' matched by rule '{rule.name}' is not configured",
            )
        return endpoint

    def resolve(
        self,
        section: ContentSection,
        asset_type: Optional[AssetType],
        blob_name: str,
        *,
        container_name: Optional[str] = None,
        query_params: Optional[str] = None,
        is_mock_storage: bool = False,
    ) -> str:
        if blob_name is None or not blob_name.strip():
            raise ValidationError("Blob name cannot be null or empty.", details={"field": "blob_name"})

        if is_mock_storage:
            # 模拟存储模式下拒绝 mock-of-mock 路径，与编排器的校验相互独立
            if "mock" in blob_name:
                raise ValidationError("Blob name cannot be a mock blob.", details={"field": "blob_name"})
            mock_container = get_blob_container_name(section, asset_type, is_mock_storage=True)
            return _append_query(f"{self.mock_storage_url}/{mock_container}/{blob_name}", query_params)

        endpoint = self.endpoint_for(section, asset_type)
        container = container_name or get_blob_container_name(section, asset_type)
        return _append_query(f"{endpoint}/{container}/{blob_name}", query_params)


@lru_cache(maxsize=1)
def get_cdn_resolver() -> CdnUrlResolver:
    """基于全局配置的默认解析器"""
    return CdnUrlResolver.from_settings(settings)


def resolve_cdn_url(
    section: ContentSection,
    asset_type: Optional[AssetType],
    blob_name: str,
    query_params: Optional[str] = None,
    is_mock_storage: bool = False,
    container_name: Optional[str] = None,
) -> str:
    return get_cdn_resolver().resolve(
        section,
        asset_type,
        blob_name,
        container_name=container_name,
        query_params=query_params,
        is_mock_storage=is_mock_storage,
    )
