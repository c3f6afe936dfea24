"""检测器异常定义"""


class SourceNotReady(Exception):
    """关键点来源尚未就绪（视频未开始或帧为空），调用方可重试"""


class NotCalibratedError(Exception):
    """校准未完成时请求基线快照"""


class DetectorError(Exception):
    """关键点来源发生不可恢复的错误，当前检测会话失效"""
