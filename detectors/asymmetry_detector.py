"""面部不对称流式检测模块：校准个人基线，逐帧比较近期偏斜分数并输出告警"""

import logging
import math
import time
from typing import Callable, Optional

from calibration.score_window import CalibrationBuffer, RecentWindow, compute_stats
from detectors.asymmetry_scorer import score_landmarks
from detectors.landmark_source import LandmarkSource
from evaluators.alert_latch import AlertLatch, PersistenceCounter
from models.data_models import (
    STATUS_ALERT,
    STATUS_CALIBRATING,
    STATUS_NO_FACE,
    STATUS_NO_VIDEO,
    STATUS_OK,
    BaselineSnapshot,
    DetectorConfig,
    FrameLandmarks,
    FrameResult,
)
from models.exceptions import DetectorError, NotCalibratedError, SourceNotReady

logger = logging.getLogger(__name__)

PHASE_UNCALIBRATED = "uncalibrated"
PHASE_MONITORING = "monitoring"
PHASE_ALERT = "alert"


class AsymmetryDetector:
    """
    单人脸、单调用方的逐帧状态机。

    未校准时把偏斜分数写入基线窗口，窗口首次填满后从下一帧起进入监测；
    监测时比较近期窗口均值与基线均值，偏离持续 persist_frames 帧后锁存告警。
    不是线程安全的，同一实例只能由一个调用方按帧顺序调用。
    """

    def __init__(
        self,
        config: Optional[DetectorConfig] = None,
        clock: Callable[[], float] = time.time,
    ):
        self.config = config or DetectorConfig()
        self._clock = clock
        self._baseline = CalibrationBuffer(self.config.baseline_frames)
        self._recent = RecentWindow(self.config.recent_frames)
        self._counter = PersistenceCounter(self.config.persist_frames)
        self._latch = AlertLatch(self.config.persist_frames)
        self._calibrated = False
        self._failed = False

    # ---- 状态查询 ----

    @property
    def is_calibrated(self) -> bool:
        return self._calibrated

    @property
    def is_alerted(self) -> bool:
        return self._latch.is_alerted

    @property
    def persist_count(self) -> int:
        return self._counter.count

    @property
    def baseline_scores(self) -> tuple:
        return self._baseline.snapshot()

    @property
    def recent_scores(self) -> tuple:
        return self._recent.snapshot()

    @property
    def phase(self) -> str:
        if not self._calibrated:
            return PHASE_UNCALIBRATED
        return PHASE_ALERT if self._latch.is_alerted else PHASE_MONITORING

    # ---- 逐帧处理 ----

    def process_frame(
        self,
        landmarks: Optional[FrameLandmarks],
        timestamp: float,
        video_ready: bool = True,
    ) -> FrameResult:
        """
        处理一帧关键点。

        Args:
            landmarks: 本帧关键点；None 表示来源就绪但未检测到人脸
            timestamp: 帧时间戳
            video_ready: False 表示来源尚未就绪

        Returns:
            FrameResult，status 为 no_video / no_face / calibrating / ok / alert

        Raises:
            DetectorError: 检测器已失效或关键点坐标非有限值
        """
        self._ensure_usable()

        if not video_ready:
            return FrameResult(status=STATUS_NO_VIDEO, timestamp=timestamp, message="视频未就绪")

        if landmarks is None:
            return FrameResult(status=STATUS_NO_FACE, timestamp=timestamp, message="未检测到人脸")

        # 先完成评分再修改窗口，失败帧不改变状态
        skew = self._score(landmarks)

        if not self._calibrated:
            return self._calibrate(skew, landmarks, timestamp)
        return self._monitor(skew, landmarks, timestamp)

    def process_source(self, source: LandmarkSource, frame, timestamp: float) -> FrameResult:
        """
        从关键点来源读取一帧并处理。

        SourceNotReady 转换为 no_video 结果；来源的其他异常使检测器失效并以
        DetectorError 抛出。
        """
        self._ensure_usable()
        try:
            landmarks = source.detect(frame, timestamp)
        except SourceNotReady:
            return self.process_frame(None, timestamp, video_ready=False)
        except DetectorError:
            self._fail("关键点来源不可用")
            raise
        except Exception as e:
            self._fail("关键点来源异常: %s" % e)
            raise DetectorError(f"关键点来源异常: {e}") from e
        return self.process_frame(landmarks, timestamp)

    def _score(self, landmarks: FrameLandmarks) -> float:
        coords = [
            value
            for point in (landmarks.eye_left, landmarks.eye_right, landmarks.mouth_left, landmarks.mouth_right)
            for value in (point.x, point.y)
        ]
        if not all(math.isfinite(v) for v in coords):
            self._fail("关键点坐标无效")
            raise DetectorError(f"关键点坐标包含非有限值: {coords}")

        skew = score_landmarks(landmarks)
        if not math.isfinite(skew):
            self._fail("关键点坐标无效")
            raise DetectorError(f"关键点坐标无效，偏斜分数为 {skew}")
        return skew

    def _calibrate(self, skew: float, landmarks: FrameLandmarks, timestamp: float) -> FrameResult:
        """校准阶段：写入基线窗口，首次填满时标记校准完成"""
        self._baseline.push(skew)
        if self._baseline.is_full:
            self._calibrated = True
            logger.info(
                "校准完成: 基线均值 %.4f, 标准差 %.4f",
                self._baseline.mean(),
                self._baseline.std(),
            )

        return FrameResult(
            status=STATUS_CALIBRATING,
            timestamp=timestamp,
            message=f"校准中... {len(self._baseline)}/{self.config.baseline_frames}",
            face_detected=True,
            progress=self._baseline.progress,
            skew_score=skew,
            landmarks=landmarks,
        )

    def _monitor(self, skew: float, landmarks: FrameLandmarks, timestamp: float) -> FrameResult:
        """监测阶段：比较近期均值与基线，更新持续计数、告警和基线漂移"""
        cfg = self.config
        self._recent.push(skew)

        baseline_mean = self._baseline.mean()
        baseline_std = self._baseline.std()
        recent_mean = self._recent.mean()
        delta = abs(recent_mean - baseline_mean)
        # 基线方差接近 0 时以 threshold_floor 兜底
        threshold = max(cfg.threshold_floor, cfg.threshold_sigma * baseline_std)
        window_full = self._recent.is_full

        was_alerted = self._latch.is_alerted
        persist = self._counter.update(window_full and delta > threshold)
        alerted = self._latch.update(persist)
        if alerted and not was_alerted:
            logger.warning(
                "检测到面部不对称: delta=%.4f, threshold=%.4f, 持续帧数 %d",
                delta,
                threshold,
                persist,
            )

        # 稳定且未告警时，近期均值作为新的正常状态并入基线
        if not alerted and window_full and delta < threshold / cfg.drift_divisor:
            self._baseline.push(recent_mean)

        return FrameResult(
            status=STATUS_ALERT if alerted else STATUS_OK,
            timestamp=timestamp,
            message="检测到面部不对称！" if alerted else "正常",
            face_detected=True,
            skew_score=skew,
            recent_mean=recent_mean,
            baseline_mean=baseline_mean,
            delta=delta,
            threshold=threshold,
            persist_count=persist,
            is_alerted=alerted,
            landmarks=landmarks,
        )

    # ---- 控制操作 ----

    def reset(self):
        """清空两个窗口和计数器，回到未校准状态"""
        self._baseline.clear()
        self._recent.clear()
        self._counter.reset()
        self._latch.reset()
        self._calibrated = False
        logger.info("检测器已重置，重新开始校准")

    def load_baseline(self, snapshot: BaselineSnapshot):
        """
        载入已保存的基线，跳过校准直接进入监测。

        Raises:
            ValueError: 快照中没有分数或包含非有限值
        """
        if not snapshot.scores:
            raise ValueError("基线快照为空")
        if not all(math.isfinite(v) for v in snapshot.scores + (snapshot.mean, snapshot.std)):
            raise ValueError("基线快照包含非有限值 (NaN 或 Infinity)")

        self._baseline.replace(snapshot.scores)
        self._recent.clear()
        self._counter.reset()
        self._latch.reset()
        self._calibrated = True
        logger.info("已载入基线: %d 帧, 均值 %.4f", len(self._baseline), self._baseline.mean())

    def get_baseline_snapshot(self) -> BaselineSnapshot:
        """
        导出当前基线。

        Raises:
            NotCalibratedError: 校准尚未完成
        """
        if not self._calibrated:
            raise NotCalibratedError("校准未完成，无法导出基线")

        scores = self._baseline.snapshot()
        stats = compute_stats(scores)
        return BaselineSnapshot(
            scores=scores,
            mean=stats["mean"],
            std=stats["std"],
            frame_count=len(scores),
            capacity=self.config.baseline_frames,
            captured_at=self._clock(),
        )

    def _ensure_usable(self):
        if self._failed:
            raise DetectorError("检测器已失效，请重新初始化关键点来源并创建新的检测器")

    def _fail(self, reason: str):
        self._failed = True
        logger.error("检测器失效: %s", reason)
