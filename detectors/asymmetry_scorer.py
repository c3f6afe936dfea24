"""面部不对称评分模块，计算嘴角连线相对双眼轴线的偏斜分数"""

import math

from models.data_models import FrameLandmarks, LandmarkPoint


def calculate_skew(
    eye_left: LandmarkPoint,
    eye_right: LandmarkPoint,
    mouth_left: LandmarkPoint,
    mouth_right: LandmarkPoint,
) -> float:
    """
    计算偏斜分数。

    将嘴角向量旋转到双眼轴线坐标系下，取垂直分量并除以眼距:
        eye = eye_left - eye_right, angle = atan2(eye)
        skew = (mx * sin(-angle) + my * cos(-angle)) / |eye|

    Args:
        eye_left: 左外眼角
        eye_right: 右外眼角
        mouth_left: 左嘴角
        mouth_right: 右嘴角

    Returns:
        偏斜分数；嘴角连线与眼轴平行时为 0，眼距为零时按 1.0 计算
    """
    eye_dx = eye_left.x - eye_right.x
    eye_dy = eye_left.y - eye_right.y
    eye_angle = math.atan2(eye_dy, eye_dx)
    eye_dist = math.hypot(eye_dx, eye_dy) or 1.0

    mouth_dx = mouth_right.x - mouth_left.x
    mouth_dy = mouth_right.y - mouth_left.y

    aligned_dy = mouth_dx * math.sin(-eye_angle) + mouth_dy * math.cos(-eye_angle)
    return aligned_dy / eye_dist


def score_landmarks(landmarks: FrameLandmarks) -> float:
    """对一帧关键点计算偏斜分数"""
    return calculate_skew(
        landmarks.eye_left,
        landmarks.eye_right,
        landmarks.mouth_left,
        landmarks.mouth_right,
    )
