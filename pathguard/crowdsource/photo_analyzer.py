"""
Photo analyzer for hazard detection in user-submitted images
Uses computer vision heuristics to derive risk findings and an annotated image
"""

import logging
import time
from typing import Optional, Dict, Any, List, Tuple
from dataclasses import dataclass, field

import cv2
import numpy as np

from pathguard.core.constants import MAX_SEVERITY, MIN_SEVERITY
from pathguard.core.exceptions import AnalysisError
from pathguard.crowdsource.report_handler import HazardCategory

logger = logging.getLogger(__name__)


@dataclass
class RiskFinding:
    """A single hazard found in a photo."""
    category: HazardCategory
    risk: str
    mitigation: str
    confidence: float
    regions: List[Dict[str, float]] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "category": self.category.value,
            "risk": self.risk,
            "mitigation": self.mitigation,
            "confidence": round(self.confidence, 3),
            "regions": self.regions,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "RiskFinding":
        return cls(
            category=HazardCategory(data["category"]),
            risk=data["risk"],
            mitigation=data["mitigation"],
            confidence=float(data.get("confidence", 0.0)),
            regions=list(data.get("regions") or []),
        )


@dataclass
class AnalysisResult:
    """Result of photo analysis."""
    findings: List[RiskFinding] = field(default_factory=list)
    image_quality: str = "good"  # good, poor, blurry, dark
    annotated_image: Optional[bytes] = None

    processing_time_ms: float = 0.0
    model_version: str = "1.0"
    warnings: List[str] = field(default_factory=list)

    @property
    def severity_estimate(self) -> int:
        """Map the strongest finding onto the 1-5 severity scale."""
        if not self.findings:
            return MIN_SEVERITY
        strongest = max(f.confidence for f in self.findings)
        return max(MIN_SEVERITY, min(MAX_SEVERITY, 1 + round(strongest * 4)))

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary (the annotated image is not included)."""
        return {
            "findings": [f.to_dict() for f in self.findings],
            "severity_estimate": self.severity_estimate,
            "image_quality": self.image_quality,
            "processing_time_ms": round(self.processing_time_ms, 1),
            "model_version": self.model_version,
            "warnings": self.warnings,
        }


class HazardPhotoAnalyzer:
    """
    Analyzes photos of roads, buildings and infrastructure for hazards.

    Three detectors run on every image:
    - poor lighting (crime risk on dark routes)
    - dense edge structure such as cracks or collapse (disaster risk)
    - saturated warning colors such as cones and barriers (traffic risk)
    """

    # Mean HSV value below which a scene counts as poorly lit
    DARK_VALUE_MAX = 70

    # Fraction of Canny edge pixels above which structure looks damaged
    EDGE_RATIO_MIN = 0.12

    # Warning color thresholds (HSV, red-orange-yellow)
    WARNING_HUE_RANGES = ((0, 30), (160, 179))
    WARNING_SAT_MIN = 120
    WARNING_VAL_MIN = 120
    WARNING_RATIO_MIN = 0.02

    # BGR colors for annotation boxes
    ANNOTATION_COLORS = {
        HazardCategory.TRAFFIC: (246, 130, 59),
        HazardCategory.CRIME: (68, 68, 239),
        HazardCategory.DISASTER: (21, 204, 250),
        HazardCategory.OTHER: (128, 114, 107),
    }

    def __init__(self, jpeg_quality: int = 85, max_regions: int = 10):
        """
        Initialize photo analyzer.

        Args:
            jpeg_quality: Quality of the annotated JPEG output
            max_regions: Maximum regions reported per finding
        """
        self.jpeg_quality = jpeg_quality
        self.max_regions = max_regions

    def analyze(self, image_data: bytes, annotate: bool = True) -> AnalysisResult:
        """
        Analyze an image for hazards.

        Args:
            image_data: Image bytes (JPEG, PNG)
            annotate: Produce an annotated JPEG with detected regions

        Returns:
            AnalysisResult with findings

        Raises:
            AnalysisError: if the image cannot be decoded
        """
        start_time = time.time()

        image = self._load_image(image_data)
        result = AnalysisResult()
        result.image_quality = self._assess_quality(image)
        if result.image_quality != "good":
            result.warnings.append(f"Image quality: {result.image_quality}")

        for detector in (
            self._detect_poor_lighting,
            self._detect_structural_damage,
            self._detect_warning_colors,
        ):
            finding = detector(image)
            if finding is not None:
                result.findings.append(finding)

        if annotate:
            result.annotated_image = self._annotate(image, result.findings)

        result.processing_time_ms = (time.time() - start_time) * 1000

        logger.info(
            f"Photo analysis: {len(result.findings)} findings, "
            f"quality={result.image_quality}, severity={result.severity_estimate}"
        )

        return result

    def _load_image(self, image_data: bytes) -> np.ndarray:
        """Decode image bytes into a BGR array."""
        if not image_data:
            raise AnalysisError("Empty image")

        nparr = np.frombuffer(image_data, np.uint8)
        image = cv2.imdecode(nparr, cv2.IMREAD_COLOR)
        if image is None:
            raise AnalysisError("Failed to decode image")
        return image

    def _assess_quality(self, image: np.ndarray) -> str:
        """Assess image quality."""
        gray = cv2.cvtColor(image, cv2.COLOR_BGR2GRAY)

        if np.mean(gray) < 30:
            return "dark"

        h, w = image.shape[:2]
        if h < 200 or w < 200:
            return "poor"

        # Laplacian variance
        if cv2.Laplacian(gray, cv2.CV_64F).var() < 100:
            return "blurry"

        return "good"

    def _detect_poor_lighting(self, image: np.ndarray) -> Optional[RiskFinding]:
        hsv = cv2.cvtColor(image, cv2.COLOR_BGR2HSV)
        mean_value = float(np.mean(hsv[:, :, 2]))

        if mean_value >= self.DARK_VALUE_MAX:
            return None

        confidence = max(0.3, 1 - mean_value / self.DARK_VALUE_MAX)
        return RiskFinding(
            category=HazardCategory.CRIME,
            risk="見通しが悪く暗い場所です。夜間の通行で犯罪に巻き込まれる恐れがあります。",
            mitigation="街灯の設置を自治体に要望し、夜間は明るい道を選んで通行してください。",
            confidence=confidence,
        )

    def _detect_structural_damage(self, image: np.ndarray) -> Optional[RiskFinding]:
        gray = cv2.cvtColor(image, cv2.COLOR_BGR2GRAY)
        gray = cv2.GaussianBlur(gray, (3, 3), 0)
        edges = cv2.Canny(gray, 50, 150)

        edge_ratio = float(np.count_nonzero(edges)) / edges.size
        if edge_ratio < self.EDGE_RATIO_MIN:
            return None

        kernel = np.ones((5, 5), np.uint8)
        mask = cv2.dilate(edges, kernel, iterations=2)

        return RiskFinding(
            category=HazardCategory.DISASTER,
            risk="ひび割れや崩れの兆候があります。地震や大雨の際に倒壊・落下の恐れがあります。",
            mitigation="近づかずに迂回し、管理者または自治体に点検を依頼してください。",
            confidence=min(1.0, edge_ratio * 4),
            regions=self._get_regions(mask),
        )

    def _detect_warning_colors(self, image: np.ndarray) -> Optional[RiskFinding]:
        hsv = cv2.cvtColor(image, cv2.COLOR_BGR2HSV)

        mask = np.zeros(hsv.shape[:2], np.uint8)
        for low, high in self.WARNING_HUE_RANGES:
            lower = np.array([low, self.WARNING_SAT_MIN, self.WARNING_VAL_MIN])
            upper = np.array([high, 255, 255])
            mask = cv2.bitwise_or(mask, cv2.inRange(hsv, lower, upper))

        kernel = np.ones((5, 5), np.uint8)
        mask = cv2.morphologyEx(mask, cv2.MORPH_OPEN, kernel)

        ratio = float(np.count_nonzero(mask)) / mask.size
        if ratio < self.WARNING_RATIO_MIN:
            return None

        return RiskFinding(
            category=HazardCategory.TRAFFIC,
            risk="工事や障害物を示す表示があります。歩行者が車道にはみ出す恐れがあります。",
            mitigation="歩道が確保されている側を通行し、必要に応じて通学路の変更を検討してください。",
            confidence=min(1.0, 0.5 + ratio),
            regions=self._get_regions(mask),
        )

    def _get_regions(self, mask: np.ndarray, min_area: float = 100) -> List[Dict[str, float]]:
        """Get normalized bounding boxes from a detection mask, largest first."""
        contours, _ = cv2.findContours(mask, cv2.RETR_EXTERNAL, cv2.CHAIN_APPROX_SIMPLE)

        h, w = mask.shape
        boxes: List[Tuple[float, Dict[str, float]]] = []

        for contour in contours:
            area = cv2.contourArea(contour)
            if area < min_area:
                continue

            x, y, bw, bh = cv2.boundingRect(contour)
            boxes.append((area, {
                "x": x / w,
                "y": y / h,
                "width": bw / w,
                "height": bh / h,
                "area": area / (h * w),
            }))

        boxes.sort(key=lambda item: item[0], reverse=True)
        return [region for _, region in boxes[:self.max_regions]]

    def _annotate(self, image: np.ndarray, findings: List[RiskFinding]) -> bytes:
        """Draw finding regions on a copy of the image and encode it as JPEG."""
        canvas = image.copy()
        h, w = canvas.shape[:2]

        for finding in findings:
            color = self.ANNOTATION_COLORS[finding.category]
            for region in finding.regions:
                top_left = (int(region["x"] * w), int(region["y"] * h))
                bottom_right = (
                    int((region["x"] + region["width"]) * w),
                    int((region["y"] + region["height"]) * h),
                )
                cv2.rectangle(canvas, top_left, bottom_right, color, 2)

        ok, encoded = cv2.imencode(".jpg", canvas, [cv2.IMWRITE_JPEG_QUALITY, self.jpeg_quality])
        if not ok:
            raise AnalysisError("Failed to encode annotated image")
        return encoded.tobytes()


def analyze_hazard_photo(image_data: bytes) -> AnalysisResult:
    """
    Convenience function to analyze a hazard photo.

    Args:
        image_data: Image bytes

    Returns:
        AnalysisResult
    """
    analyzer = HazardPhotoAnalyzer()
    return analyzer.analyze(image_data)
