"""核心数据模型定义"""

import math
from dataclasses import dataclass, field
from typing import Optional, Tuple

# 帧结果状态
STATUS_NO_VIDEO = "no_video"
STATUS_NO_FACE = "no_face"
STATUS_CALIBRATING = "calibrating"
STATUS_OK = "ok"
STATUS_ALERT = "alert"


@dataclass(frozen=True)
class LandmarkPoint:
    """归一化坐标关键点"""
    x: float
    y: float


@dataclass(frozen=True)
class FrameLandmarks:
    """单帧的四个面部关键点（外眼角和嘴角）"""
    eye_left: LandmarkPoint
    eye_right: LandmarkPoint
    mouth_left: LandmarkPoint
    mouth_right: LandmarkPoint

    def to_dict(self) -> dict:
        return {
            "eye_left": {"x": self.eye_left.x, "y": self.eye_left.y},
            "eye_right": {"x": self.eye_right.x, "y": self.eye_right.y},
            "mouth_left": {"x": self.mouth_left.x, "y": self.mouth_left.y},
            "mouth_right": {"x": self.mouth_right.x, "y": self.mouth_right.y},
        }

    @classmethod
    def from_dict(cls, data: dict) -> "FrameLandmarks":
        """从 {"eye_left": {"x": .., "y": ..}, ...} 构造"""
        try:
            return cls(
                **{
                    key: LandmarkPoint(float(data[key]["x"]), float(data[key]["y"]))
                    for key in ("eye_left", "eye_right", "mouth_left", "mouth_right")
                }
            )
        except (KeyError, TypeError) as e:
            raise ValueError(f"关键点数据格式错误: {e}") from e


@dataclass(frozen=True)
class DetectorConfig:
    """检测参数配置"""
    baseline_frames: int = 60
    recent_frames: int = 10
    persist_frames: int = 8
    threshold_floor: float = 0.07
    threshold_sigma: float = 3.0
    drift_divisor: float = 2.0

    def __post_init__(self):
        for name in ("baseline_frames", "recent_frames", "persist_frames"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int) or value < 1:
                raise ValueError(f"{name} 必须为正整数: {value!r}")
        for name in ("threshold_floor", "threshold_sigma", "drift_divisor"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, (int, float)) or not math.isfinite(value):
                raise ValueError(f"{name} 必须为有限数值: {value!r}")
        if self.threshold_floor < 0:
            raise ValueError(f"threshold_floor 不能为负: {self.threshold_floor}")
        if self.threshold_sigma < 0:
            raise ValueError(f"threshold_sigma 不能为负: {self.threshold_sigma}")
        if self.drift_divisor <= 0:
            raise ValueError(f"drift_divisor 必须大于 0: {self.drift_divisor}")


@dataclass
class FrameResult:
    """单帧检测结果"""
    status: str
    timestamp: float
    message: str
    face_detected: bool = False
    progress: Optional[float] = None
    skew_score: Optional[float] = None
    recent_mean: Optional[float] = None
    baseline_mean: Optional[float] = None
    delta: Optional[float] = None
    threshold: Optional[float] = None
    persist_count: int = 0
    is_alerted: bool = False
    landmarks: Optional[FrameLandmarks] = None

    def to_dict(self) -> dict:
        """转换为可 JSON 序列化的字典"""
        return {
            "status": self.status,
            "timestamp": self.timestamp,
            "message": self.message,
            "face_detected": self.face_detected,
            "progress": self.progress,
            "skew_score": self.skew_score,
            "recent_mean": self.recent_mean,
            "baseline_mean": self.baseline_mean,
            "delta": self.delta,
            "threshold": self.threshold,
            "persist_count": self.persist_count,
            "is_alerted": self.is_alerted,
            "landmarks": self.landmarks.to_dict() if self.landmarks else None,
        }


@dataclass(frozen=True)
class BaselineSnapshot:
    """完成校准后的基线快照"""
    scores: Tuple[float, ...]
    mean: float
    std: float
    frame_count: int
    capacity: int
    captured_at: float = field(default=0.0)

    def to_dict(self) -> dict:
        return {
            "baseline": list(self.scores),
            "mean": self.mean,
            "std": self.std,
            "frames": self.frame_count,
            "capacity": self.capacity,
            "timestamp": self.captured_at,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "BaselineSnapshot":
        """
        从持久化字典恢复快照。

        Raises:
            ValueError: 缺少字段、基线为空或包含非有限值
        """
        try:
            scores = tuple(float(v) for v in data["baseline"])
            mean = float(data["mean"])
            std = float(data["std"])
            frame_count = int(data.get("frames", len(scores)))
            capacity = int(data.get("capacity", len(scores)))
            captured_at = float(data.get("timestamp", 0.0))
        except (KeyError, TypeError, AttributeError) as e:
            raise ValueError(f"基线数据格式错误: {e}") from e

        if not scores:
            raise ValueError("基线数据为空")
        if not all(math.isfinite(v) for v in scores + (mean, std)):
            raise ValueError("基线数据包含非有限值 (NaN 或 Infinity)")

        return cls(
            scores=scores,
            mean=mean,
            std=std,
            frame_count=frame_count,
            capacity=capacity,
            captured_at=captured_at,
        )
