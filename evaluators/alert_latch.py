"""持续性计数与告警锁存模块，将逐帧的偏离信号平滑为稳定告警"""


class PersistenceCounter:
    """偏离帧 +1，正常帧 -1（不低于 0），计数上限为 persist_frames"""

    def __init__(self, persist_frames: int = 8):
        self.persist_frames = persist_frames
        self._count = 0

    @property
    def count(self) -> int:
        return self._count

    def update(self, is_deviant: bool) -> int:
        """
        根据本帧是否偏离更新计数。

        Args:
            is_deviant: 本帧近期均值是否超出阈值

        Returns:
            更新后的计数
        """
        if is_deviant:
            self._count = min(self.persist_frames, self._count + 1)
        else:
            self._count = max(0, self._count - 1)
        return self._count

    def reset(self):
        """重置计数"""
        self._count = 0


class AlertLatch:
    """计数达到 persist_frames 后锁存告警，直到显式重置"""

    def __init__(self, persist_frames: int = 8):
        self.persist_frames = persist_frames
        self._alerted = False

    @property
    def is_alerted(self) -> bool:
        return self._alerted

    def update(self, persist_count: int) -> bool:
        """返回本帧之后是否处于告警状态"""
        if persist_count >= self.persist_frames:
            self._alerted = True
        return self._alerted

    def reset(self):
        self._alerted = False
