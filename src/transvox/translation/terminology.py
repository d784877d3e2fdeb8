"""
Domain Terminology Post-Processing.

When a request carries a domain tag with a configured profile, the
translated text is rewritten so that the domain's canonical terms use the
house translation for the target language. Pronunciation text is never
touched.

Language buckets are picked by substring on the target language *name*:
    "korean"  in target.lower() -> "ko"
    "vietnam" in target.lower() -> "vi"
Anything else (including locale codes such as "ko-KR") is left unchanged.

Matching is case-insensitive on word boundaries. All terms are combined
into one alternation ordered longest first, so "no insertion" is consumed
before "insertion" can match inside it, and substituted text is never
matched again.
"""
from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Dict, Mapping, Optional, Pattern

from transvox.core.logging import debug, get_logger

_LOG = get_logger("transvox.terminology")


MANUFACTURING_TERMS: Dict[str, Dict[str, str]] = {
    # Electronic component mounting
    "SMD": {"ko": "SMD (에스엠디)", "vi": "SMD"},
    "IMT": {"ko": "IMT (아이엠티)", "vi": "IMT"},
    "RADIAL": {"ko": "라디알", "vi": "RADIAL"},
    "AXIAL": {"ko": "엑시알", "vi": "AXIAL"},
    "EYELET": {"ko": "아일렛", "vi": "EYELET"},
    "FEEDER": {"ko": "피더", "vi": "Feeder"},
    "MASK": {"ko": "마스크", "vi": "Mask"},
    # Production
    "insertion": {"ko": "삽입", "vi": "Chèn"},
    "no insertion": {"ko": "무삽", "vi": "Không chèn"},
    "loss": {"ko": "유실", "vi": "Thất thoát"},
    "efficiency": {"ko": "효율", "vi": "Hiệu suất"},
    "yield": {"ko": "수율", "vi": "Tỷ lệ đạt"},
    "defect rate": {"ko": "불량률", "vi": "Tỷ lệ lỗi"},
    "throughput": {"ko": "처리량", "vi": "Năng suất"},
    "downtime": {"ko": "비가동시간", "vi": "Thời gian dừng máy"},
    # Equipment
    "PLC": {"ko": "PLC", "vi": "PLC"},
    "HMI": {"ko": "HMI", "vi": "HMI"},
    "SCADA": {"ko": "스카다", "vi": "SCADA"},
    "MES": {"ko": "생산실행시스템", "vi": "Hệ thống MES"},
    "ERP": {"ko": "전사적자원관리", "vi": "Hệ thống ERP"},
    "OEE": {"ko": "설비종합효율", "vi": "Hiệu suất thiết bị tổng thể"},
    "conveyor": {"ko": "컨베이어", "vi": "Băng tải"},
    "sensor": {"ko": "센서", "vi": "Cảm biến"},
    "actuator": {"ko": "액추에이터", "vi": "Bộ truyền động"},
    # Quality and maintenance
    "quality control": {"ko": "품질관리", "vi": "Kiểm soát chất lượng"},
    "preventive maintenance": {"ko": "예방정비", "vi": "Bảo trì phòng ngừa"},
    "predictive maintenance": {"ko": "예측정비", "vi": "Bảo trì dự đoán"},
    "assembly line": {"ko": "조립라인", "vi": "Dây chuyền lắp ráp"},
    "work order": {"ko": "작업지시", "vi": "Lệnh sản xuất"},
    "lot": {"ko": "로트", "vi": "Lô"},
    "batch": {"ko": "배치", "vi": "Lô sản xuất"},
}

MANUFACTURING_PREAMBLE = """You are an expert translator specializing in MANUFACTURING AUTOMATION and ELECTRONICS ASSEMBLY.

CRITICAL TERMINOLOGY RULES:
- SMD = SMD (에스엠디/SMD) - Surface Mount Device
- IMT = IMT (아이엠티/IMT) - Insert Mount Technology
- RADIAL = 라디알/RADIAL - Radial component
- AXIAL = 엑시알/AXIAL - Axial component
- EYELET = 아일렛/EYELET - Metal eyelet
- FEEDER = 피더/Feeder - Component feeder
- MASK = 마스크/Mask - Solder mask
- 삽입/Chèn = insertion
- 무삽/Không chèn = no insertion
- 유실/Thất thoát = loss/missing
- 효율/Hiệu suất = efficiency
- PLC, HMI, SCADA, MES, OEE = Keep as abbreviations

Maintain technical accuracy. Use industry-standard terminology.
Preserve all product codes, model numbers, and measurements exactly as-is."""


def language_bucket(target_language: str) -> Optional[str]:
    """Bucket key for a target language name, or None when ambiguous."""
    lowered = (target_language or "").lower()
    if "korean" in lowered:
        return "ko"
    if "vietnam" in lowered:
        return "vi"
    return None


@dataclass
class DomainProfile:
    """
    Terminology table and system preamble for one domain.

    Attributes:
        name: Domain tag as sent by clients.
        terms: Canonical term -> {bucket -> replacement}.
        preamble: System text prepended to deep-provider instructions.
    """
    name: str
    terms: Mapping[str, Mapping[str, str]]
    preamble: str = ""
    _pattern: Optional[Pattern[str]] = field(default=None, init=False, repr=False)
    _lookup: Dict[str, str] = field(default_factory=dict, init=False, repr=False)

    def __post_init__(self) -> None:
        if not self.terms:
            return
        ordered = sorted(self.terms, key=lambda t: (-len(t), t))
        self._lookup = {t.lower(): t for t in ordered}
        alternation = "|".join(re.escape(t) for t in ordered)
        self._pattern = re.compile(rf"\b(?:{alternation})\b", re.IGNORECASE)

    def apply(self, text: str, bucket: str) -> str:
        if self._pattern is None:
            return text

        def _replace(match: "re.Match[str]") -> str:
            term = self._lookup[match.group(0).lower()]
            return self.terms[term].get(bucket, match.group(0))

        return self._pattern.sub(_replace, text)


DOMAIN_PROFILES: Dict[str, DomainProfile] = {
    "manufacturing": DomainProfile(
        name="manufacturing",
        terms=MANUFACTURING_TERMS,
        preamble=MANUFACTURING_PREAMBLE,
    ),
}


def get_domain_profile(domain: Optional[str]) -> Optional[DomainProfile]:
    if not domain:
        return None
    return DOMAIN_PROFILES.get(domain)


def domain_preamble(domain: Optional[str]) -> str:
    """System preamble for a domain; empty for ``general`` and unknown tags."""
    profile = get_domain_profile(domain)
    return profile.preamble if profile else ""


def apply_terminology(text: str, domain: Optional[str], target_language: str) -> str:
    """
    Enforce domain terminology on translated text.

    Args:
        text: Translated text.
        domain: Request domain tag; no-op without a matching profile.
        target_language: Target language name, e.g. "Vietnamese".

    Returns:
        Text with every configured term replaced for the language bucket.
    """
    profile = get_domain_profile(domain)
    if profile is None or not text:
        return text

    bucket = language_bucket(target_language)
    if bucket is None:
        return text

    result = profile.apply(text, bucket)
    if result != text:
        debug(_LOG, "terminology_applied", domain=profile.name, bucket=bucket)
    return result
