"""面部不对称检测入口文件"""

import argparse
import datetime
import json
import logging
import sys
from dataclasses import asdict
from typing import Iterator, Optional

import cv2

from calibration import baseline_store
from detectors.asymmetry_detector import AsymmetryDetector
from detectors.landmark_source import (
    LandmarkSource,
    MediaPipeLandmarkSource,
    ReplaySource,
    read_landmark_records,
)
from models.data_models import STATUS_NO_VIDEO, DetectorConfig, FrameResult
from models.exceptions import DetectorError

# 默认检测参数
_DEFAULTS = asdict(DetectorConfig())


class MonitoringSession:
    """一次监测会话：持有检测器，逐帧推进并记录状态变化日志。"""

    MAX_LOG_ENTRIES = 200

    def __init__(self, config_path=None, baseline_path=None):
        config = self._load_config(config_path)
        self.detector = AsymmetryDetector(DetectorConfig(**config))
        self._logs = []
        self._prev_state = {"face_detected": True, "calibrated": False, "alerted": False}

        if baseline_path is not None:
            self.detector.load_baseline(baseline_store.load_baseline(baseline_path))
            self._prev_state["calibrated"] = True
            self._add_log("info", f"已载入基线 {baseline_path}，跳过校准")

    @staticmethod
    def _load_config(config_path):
        """从 JSON 配置文件加载检测参数，缺失字段使用默认值。"""
        config = dict(_DEFAULTS)

        if config_path is None:
            return config

        try:
            with open(config_path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except FileNotFoundError:
            print(f"警告: 配置文件不存在 {config_path}，使用默认参数")
            return config
        except json.JSONDecodeError:
            print(f"警告: 配置文件格式错误 {config_path}，使用默认参数")
            return config

        # 用配置文件中的值覆盖默认值
        for key in _DEFAULTS:
            if key in data and data[key] is not None:
                config[key] = data[key]

        return config

    def step(self, source: LandmarkSource, frame, timestamp: float) -> FrameResult:
        """从来源读取一帧并推进检测器。"""
        try:
            result = self.detector.process_source(source, frame, timestamp)
        except DetectorError as e:
            self._add_log("danger", f"检测器失效: {e}")
            raise
        self._check_state_changes(result)
        return result

    def reset(self):
        """丢弃当前基线，重新校准。"""
        self.detector.reset()
        self._prev_state["calibrated"] = False
        self._prev_state["alerted"] = False
        self._add_log("info", "重新开始校准")

    def save_baseline(self, output_path: str):
        """导出当前基线，校准未完成时抛出 NotCalibratedError。"""
        snapshot = self.detector.get_baseline_snapshot()
        baseline_store.save_baseline(snapshot, output_path)
        self._add_log("info", f"基线已保存 {output_path}")

    def _add_log(self, level, message):
        """添加一条会话日志。level: info / warning / danger"""
        entry = {
            "time": datetime.datetime.now().strftime("%H:%M:%S"),
            "level": level,
            "message": message,
        }
        self._logs.append(entry)
        if len(self._logs) > self.MAX_LOG_ENTRIES:
            self._logs = self._logs[-self.MAX_LOG_ENTRIES:]

    def _check_state_changes(self, result: FrameResult):
        """检测状态变化并记录日志。"""
        prev = self._prev_state

        # 视频未就绪时不判断人脸状态
        if result.status != STATUS_NO_VIDEO:
            if result.face_detected and not prev["face_detected"]:
                self._add_log("info", "检测到人脸")
            elif not result.face_detected and prev["face_detected"]:
                self._add_log("warning", "人脸丢失")
            prev["face_detected"] = result.face_detected

        if self.detector.is_calibrated and not prev["calibrated"]:
            self._add_log("info", "校准完成，开始监测")
        if result.is_alerted and not prev["alerted"]:
            self._add_log("danger", f"⚠️ 检测到面部不对称！(delta={result.delta:.3f})")

        prev["calibrated"] = self.detector.is_calibrated
        prev["alerted"] = self.detector.is_alerted

    def get_logs(self, since=0):
        """获取日志，since 为起始索引。"""
        return self._logs[since:], len(self._logs)


def iter_replay_results(session: MonitoringSession, landmarks_path: str) -> Iterator[FrameResult]:
    """回放 JSONL 关键点记录，逐帧产出结果。"""
    source = ReplaySource()
    for index, record in enumerate(read_landmark_records(landmarks_path)):
        timestamp = float(record.get("timestamp", index))
        yield session.step(source, record, timestamp)


def iter_video_results(session: MonitoringSession, video_path: str) -> Iterator[FrameResult]:
    """读取视频文件，经 FaceMesh 提取关键点后逐帧产出结果。"""
    cap = cv2.VideoCapture(video_path)
    if not cap.isOpened():
        raise FileNotFoundError(f"无法打开视频文件: {video_path}")

    try:
        with MediaPipeLandmarkSource() as source:
            while True:
                ret, frame = cap.read()
                if not ret:
                    break
                timestamp = cap.get(cv2.CAP_PROP_POS_MSEC) / 1000.0
                yield session.step(source, frame, timestamp)
    finally:
        cap.release()


def write_results(results, out) -> Optional[FrameResult]:
    """逐行写出 JSON 结果，返回最后一帧结果。"""
    last = None
    for result in results:
        out.write(json.dumps(result.to_dict(), ensure_ascii=False) + "\n")
        last = result
    return last


def main(argv=None):
    parser = argparse.ArgumentParser(description="面部不对称检测")
    source_group = parser.add_mutually_exclusive_group(required=True)
    source_group.add_argument("--landmarks", type=str, help="JSONL 关键点记录文件路径")
    source_group.add_argument("--video", type=str, help="视频文件路径")
    parser.add_argument("--config", type=str, default=None, help="JSON 参数配置文件路径")
    parser.add_argument("--baseline", type=str, default=None, help="已保存的基线 JSON 文件路径")
    parser.add_argument("--save-baseline", type=str, default=None, help="结束后导出基线的路径")
    parser.add_argument("--output", type=str, default=None, help="结果 JSONL 输出路径，默认标准输出")
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s: %(message)s")

    try:
        session = MonitoringSession(config_path=args.config, baseline_path=args.baseline)
        if args.landmarks:
            results = iter_replay_results(session, args.landmarks)
        else:
            results = iter_video_results(session, args.video)

        if args.output:
            with open(args.output, "w", encoding="utf-8") as out:
                write_results(results, out)
        else:
            write_results(results, sys.stdout)
    except (DetectorError, ValueError) as e:
        print(f"错误: {e}", file=sys.stderr)
        return 1

    if args.save_baseline:
        if session.detector.is_calibrated:
            session.save_baseline(args.save_baseline)
        else:
            print("警告: 校准未完成，未导出基线", file=sys.stderr)

    return 0


if __name__ == "__main__":
    sys.exit(main())
