"""偏斜分数滑动窗口：校准基线窗口与近期窗口"""

from collections import deque
from typing import Iterable, Tuple

import numpy as np


def compute_stats(values) -> dict:
    """
    计算一组数值的统计信息（总体标准差）。

    Args:
        values: 非空浮点数序列

    Returns:
        {"mean": float, "std": float, "min": float, "max": float}
    """
    arr = np.asarray(list(values), dtype=float)
    if arr.size == 0:
        raise ValueError("无法对空序列计算统计信息")
    return {
        "mean": float(arr.mean()),
        "std": float(arr.std()),
        "min": float(arr.min()),
        "max": float(arr.max()),
    }


class ScoreWindow:
    """固定容量的先进先出分数窗口，超出容量时淘汰最旧的分数"""

    def __init__(self, capacity: int):
        if capacity < 1:
            raise ValueError(f"窗口容量必须为正整数: {capacity}")
        self.capacity = capacity
        self._scores = deque(maxlen=capacity)

    def __len__(self) -> int:
        return len(self._scores)

    def __iter__(self):
        return iter(self._scores)

    @property
    def is_full(self) -> bool:
        return len(self._scores) == self.capacity

    def push(self, score: float) -> None:
        self._scores.append(float(score))

    def replace(self, scores: Iterable[float]) -> None:
        """清空窗口后依次写入，只保留最后 capacity 个"""
        self._scores.clear()
        self._scores.extend(float(s) for s in scores)

    def clear(self) -> None:
        self._scores.clear()

    def mean(self) -> float:
        """窗口均值，空窗口返回 0.0"""
        if not self._scores:
            return 0.0
        return float(np.mean(self._scores))

    def std(self) -> float:
        """窗口总体标准差，空窗口返回 0.0"""
        if not self._scores:
            return 0.0
        return float(np.std(self._scores))

    def snapshot(self) -> Tuple[float, ...]:
        return tuple(self._scores)


class CalibrationBuffer(ScoreWindow):
    """校准阶段收集的个人基线分数，监测阶段接受自适应漂移更新"""

    @property
    def progress(self) -> float:
        """校准进度百分比"""
        return len(self) / self.capacity * 100.0


class RecentWindow(ScoreWindow):
    """监测阶段最近若干帧的分数"""
