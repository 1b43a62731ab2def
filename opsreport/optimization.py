import logging
from typing import Dict, Any, Iterable, Optional

# Section headings of the monthly Core Banking operations report.
DEFAULT_SECTIONS_TO_KEEP = [
    "một số chỉ số hoạt động chính của hệ thống",
    "công tác khắc phục lỗi hệ thống",
    "đánh giá hoạt động của hệ thống",
    "các công việc tiếp theo",
    "thống kê số lượng giao dịch tài chính",
    "thống kê số lượng khách hàng",
]

DEFAULT_STOP_SECTIONS = [
    "thống kê số lượng tài khoản tiền gửi",
    "danh sách các bản vá lỗi",
    "phụ lục 03",
]

logger = logging.getLogger(__name__)


def optimize_report_content(text: str,
                            sections_to_keep: Optional[Iterable[str]] = None,
                            stop_sections: Optional[Iterable[str]] = None,
                            min_length: int = 50) -> str:
    """
    Trims a report down to the sections worth sending to the LLM.

    Capturing starts on a line containing a keep-phrase and stops on a line
    containing a stop-phrase. A keep-phrase wins when a line has both. If the
    trimmed text is not longer than ``min_length`` the original text is
    returned unchanged.
    """
    keep = [s.lower() for s in (DEFAULT_SECTIONS_TO_KEEP if sections_to_keep is None else sections_to_keep)]
    stop = [s.lower() for s in (DEFAULT_STOP_SECTIONS if stop_sections is None else stop_sections)]

    optimized_lines = []
    capturing = False
    for line in text.split('\n'):
        lower_line = line.lower().strip()
        if any(section in lower_line for section in keep):
            capturing = True
        elif any(section in lower_line for section in stop):
            capturing = False

        if capturing:
            optimized_lines.append(line)

    result = '\n'.join(optimized_lines).strip()
    if len(result) > min_length:
        logger.debug(f"Trimmed report from {len(text)} to {len(result)} characters.")
        return result

    logger.info("No relevant sections found, keeping the full document text.")
    return text


class ContentOptimizer:
    """Applies the configured section trimming to extracted report text."""
    def __init__(self, config: Dict[str, Any]):
        self.config = config.get('optimization', {})

    def optimize(self, text: str) -> str:
        return optimize_report_content(
            text,
            sections_to_keep=self.config.get('sections_to_keep'),
            stop_sections=self.config.get('stop_sections'),
            min_length=self.config.get('min_length', 50),
        )
