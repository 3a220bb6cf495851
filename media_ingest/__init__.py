"""media-ingest: 媒体上传、衍生资产生成与分发 URL 解析"""

__version__ = "0.1.0"
