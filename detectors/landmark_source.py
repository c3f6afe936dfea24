"""关键点来源模块：抽象接口、基于 MediaPipe FaceMesh 的实现和记录回放实现"""

import json
import logging
from abc import ABC, abstractmethod
from typing import Iterator, Optional

import cv2
import mediapipe as mp
import numpy as np

from models.data_models import FrameLandmarks, LandmarkPoint
from models.exceptions import DetectorError, SourceNotReady

logger = logging.getLogger(__name__)

# 关键点索引常量（FaceMesh 468 点模型）
LANDMARK_INDICES = {
    "eye_left": 33,
    "eye_right": 263,
    "mouth_left": 61,
    "mouth_right": 291,
}


class LandmarkSource(ABC):
    """每帧提供四个面部关键点的来源"""

    @abstractmethod
    def detect(self, frame, timestamp: float) -> Optional[FrameLandmarks]:
        """
        从一帧输入中提取关键点。

        Returns:
            FrameLandmarks；未检测到人脸时返回 None

        Raises:
            SourceNotReady: 来源尚未就绪
        """

    def close(self):
        """释放资源"""

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()


class MediaPipeLandmarkSource(LandmarkSource):
    """使用 MediaPipe FaceMesh 检测单张人脸的关键点"""

    def __init__(
        self,
        min_detection_confidence: float = 0.5,
        min_tracking_confidence: float = 0.5,
    ):
        self.min_detection_confidence = min_detection_confidence
        self.min_tracking_confidence = min_tracking_confidence
        self._face_mesh = None

    def open(self) -> "MediaPipeLandmarkSource":
        """初始化 MediaPipe FaceMesh"""
        if self._face_mesh is None:
            self._face_mesh = mp.solutions.face_mesh.FaceMesh(
                max_num_faces=1,
                min_detection_confidence=self.min_detection_confidence,
                min_tracking_confidence=self.min_tracking_confidence,
                refine_landmarks=False,
            )
            logger.info("FaceMesh 已初始化")
        return self

    def __enter__(self):
        return self.open()

    def detect(self, frame: np.ndarray, timestamp: float) -> Optional[FrameLandmarks]:
        """
        检测单帧图像中的关键点。

        Args:
            frame: BGR 格式的 OpenCV 图像帧
            timestamp: 帧时间戳（秒）

        Returns:
            归一化坐标的 FrameLandmarks；未检测到人脸时返回 None
        """
        if self._face_mesh is None:
            raise DetectorError("FaceMesh 未初始化，请先调用 open()")

        if frame is None or frame.size == 0 or frame.shape[0] == 0 or frame.shape[1] == 0:
            raise SourceNotReady("视频帧未就绪")

        # BGR -> RGB
        rgb_frame = cv2.cvtColor(frame, cv2.COLOR_BGR2RGB)
        rgb_frame.flags.writeable = False

        results = self._face_mesh.process(rgb_frame)

        if not results.multi_face_landmarks:
            return None

        face = results.multi_face_landmarks[0]
        points = {
            key: LandmarkPoint(face.landmark[idx].x, face.landmark[idx].y)
            for key, idx in LANDMARK_INDICES.items()
        }
        return FrameLandmarks(**points)

    def close(self):
        """释放 MediaPipe 资源"""
        if self._face_mesh is not None:
            self._face_mesh.close()
            self._face_mesh = None


class ReplaySource(LandmarkSource):
    """
    回放已记录的关键点。

    每帧输入为一条记录:
        {"timestamp": float, "video_ready": bool, "landmarks": {...} | null}
    """

    def detect(self, frame: dict, timestamp: float) -> Optional[FrameLandmarks]:
        if not frame.get("video_ready", True):
            raise SourceNotReady("记录中视频未就绪")
        data = frame.get("landmarks")
        if data is None:
            return None
        return FrameLandmarks.from_dict(data)


def read_landmark_records(path: str) -> Iterator[dict]:
    """
    逐行读取 JSONL 关键点记录，跳过空行。

    Raises:
        ValueError: 行不是合法的 JSON 对象或时间戳不是数值
    """
    with open(path, "r", encoding="utf-8") as f:
        for line_no, line in enumerate(f, start=1):
            line = line.strip()
            if not line:
                continue
            try:
                record = json.loads(line)
            except json.JSONDecodeError as e:
                raise ValueError(f"第 {line_no} 行格式错误: {e}") from e

            if not isinstance(record, dict):
                raise ValueError(f"第 {line_no} 行不是 JSON 对象: {line}")
            timestamp = record.get("timestamp", 0.0)
            if isinstance(timestamp, bool) or not isinstance(timestamp, (int, float)):
                raise ValueError(f"第 {line_no} 行时间戳无效: {timestamp!r}")
            yield record
