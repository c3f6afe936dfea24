"""基线快照的 JSON 持久化"""

import json
import logging
import os

from models.data_models import BaselineSnapshot

logger = logging.getLogger(__name__)


def save_baseline(snapshot: BaselineSnapshot, output_path: str) -> None:
    """
    导出基线快照为 JSON 文件。

    Args:
        snapshot: 检测器导出的基线快照
        output_path: 输出 JSON 文件路径
    """
    os.makedirs(os.path.dirname(output_path) or ".", exist_ok=True)
    with open(output_path, "w", encoding="utf-8") as f:
        json.dump(snapshot.to_dict(), f, indent=4, ensure_ascii=False)

    logger.info("基线已导出: %s (%d 帧)", output_path, snapshot.frame_count)


def load_baseline(input_path: str) -> BaselineSnapshot:
    """
    从 JSON 文件读取基线快照。

    Raises:
        FileNotFoundError: 文件不存在
        ValueError: JSON 格式错误或缺少字段
    """
    with open(input_path, "r", encoding="utf-8") as f:
        try:
            data = json.load(f)
        except json.JSONDecodeError as e:
            raise ValueError(f"基线文件格式错误 {input_path}: {e}") from e

    if not isinstance(data, dict):
        raise ValueError(f"基线文件格式错误 {input_path}")

    snapshot = BaselineSnapshot.from_dict(data)
    logger.info("基线已读取: %s (%d 帧)", input_path, snapshot.frame_count)
    return snapshot
