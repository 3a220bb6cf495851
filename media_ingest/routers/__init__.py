"""路由模块聚合导出。"""

from . import media, naming, system

__all__ = [
	"media",
	"naming",
	"system",
]
