"""
媒体处理模块 - 提供分类、转码、缩略图与编排功能

该模块包含:
- classify: 扩展名 -> MIME 类型 -> 资产种类
- transcoder: 主副本转码
- thumbnail: 缩略图生成
- orchestrator: 处理管道编排
"""
from .classify import classify_asset, derivative_blob_name, guess_content_type
from .imaging import ImageProcessingOptions
from .orchestrator import MediaOrchestrator, OrchestratorOptions
from .thumbnail import ThumbnailGenerator
from .transcoder import ImageTranscoder

__all__ = [
    'classify_asset',
    'derivative_blob_name',
    'guess_content_type',
    'ImageProcessingOptions',
    'ImageTranscoder',
    'MediaOrchestrator',
    'OrchestratorOptions',
    'ThumbnailGenerator',
]
