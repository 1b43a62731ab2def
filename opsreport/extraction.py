import logging
import json
from typing import Dict, Any, List, Optional

from .ingestion import Document
from .llm import LLMClient, clean_json_response
from .optimization import ContentOptimizer


def _string():
    return {"type": "STRING"}


def _number():
    return {"type": "NUMBER"}


def _object(**properties):
    return {"type": "OBJECT", "properties": properties}


REPORT_SCHEMA = _object(
    kpiData=_object(
        totalFinancialTransactions=_object(value=_string(), rawValue=_number(), description=_string(), yearOverYear=_string()),
        peakDayTransactions=_object(value=_string(), rawValue=_number(), date=_string(), description=_string()),
        avgDayEndDuration=_object(value=_string(), rawMinutes=_number(), description=_string()),
        avgResponseTime=_object(value=_string(), description=_string()),
        peakTPS=_object(value=_string(), date=_string(), description=_string()),
        avgCPUUtilization=_object(value=_string(), rawPercentage=_number(), description=_string()),
    ),
    transactionByChannelData={
        "type": "ARRAY",
        "items": _object(name=_string(), value=_number(), color=_string()),
    },
    growthMetrics={
        "type": "ARRAY",
        "items": _object(name=_string(), percentageValue=_string(), absoluteValue=_string(), description=_string()),
    },
    errorDetails=_object(
        status=_string(),
        webCSRError=_object(date=_string(), description=_string(), resolutionTime=_string(),
                            impact=_string(), cause=_string(), prevention=_string()),
    ),
    systemUpdateData=_object(
        totalAppUpdates=_string(), manualParamUpdates=_string(), manualParamProd=_string(),
        systemDataUpdates=_string(), profileDataUpdates=_string(), devTestEnvStatus=_string(),
    ),
    nextSteps=_string(),
)

PROMPT_TEMPLATE = (
    "Dựa vào nội dung báo cáo sau đây, hãy trích xuất toàn bộ thông tin và trả về MỘT ĐỐI TƯỢNG JSON DUY NHẤT. "
    "Chỉ trả về đối tượng JSON, không có bất kỳ văn bản giải thích hay markdown nào khác (không có ```json).\n"
    "Nội dung báo cáo:\n---\n{content}\n---"
)

# Ordered: the first keyword found in a metric name wins.
GROWTH_METRIC_STYLES = [
    ("tăng trưởng", "trending-up", "positive"),
    ("tổng số", "users", "positive"),
    ("tài khoản kkh", "arrow-down", "negative"),
    ("tài khoản ckh", "arrow-up", "positive"),
    ("tài khoản tiền vay", "arrow-up", "positive"),
    ("giao dịch", "trending-up", "positive"),
]
DEFAULT_METRIC_STYLE = ("file-text", "neutral")


def build_prompt(content: str) -> str:
    return PROMPT_TEMPLATE.format(content=content)


def decorate_growth_metrics(metrics: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """
    Attaches an icon name and a tone to each growth metric based on its name.
    Entries that are not objects are passed through untouched.
    """
    decorated = []
    for metric in metrics or []:
        if not isinstance(metric, dict):
            decorated.append(metric)
            continue
        key = str(metric.get('name') or '').lower()
        icon, tone = DEFAULT_METRIC_STYLE
        for keyword, keyword_icon, keyword_tone in GROWTH_METRIC_STYLES:
            if keyword in key:
                icon, tone = keyword_icon, keyword_tone
                break
        decorated.append({**metric, 'icon': icon, 'tone': tone})
    return decorated


class ExtractionRequest:
    """Everything the operator confirms before the LLM is called."""
    def __init__(self, document: Document, content: str, prompt: str, token_count: Optional[int]):
        self.document = document
        self.content = content
        self.prompt = prompt
        self.token_count = token_count

    def __repr__(self):
        return f"ExtractionRequest(source={self.document.path.name}, content_length={len(self.content)}, tokens={self.token_count})"


class ReportExtractor:
    """
    Turns an ingested report document into a structured monthly report.

    The flow is split in two so a caller can show the trimmed content and
    the token count before anything is sent: ``prepare`` builds the
    request, ``run`` performs the LLM call.
    """
    def __init__(self, config: Dict[str, Any], client: Optional[LLMClient] = None):
        self.config = config.get('extraction', {})
        self.optimizer = ContentOptimizer(config)
        self.client = client or LLMClient(config)
        self.logger = logging.getLogger(__name__)

    def prepare(self, document: Document) -> ExtractionRequest:
        content = self._truncate_text(self.optimizer.optimize(document.text))
        prompt = build_prompt(content)
        token_count = self.client.count_tokens(prompt)
        self.logger.info(f"Prepared {document.path.name}: {len(content)} characters, tokens={token_count}")
        return ExtractionRequest(document, content, prompt, token_count)

    def run(self, request: ExtractionRequest) -> Dict[str, Any]:
        """
        Sends the prepared prompt and returns the parsed report.

        Raises:
            LLMRequestError / LLMRateLimitError / LLMResponseError from the client.
            ValueError: The model output is not a JSON object.
        """
        tokens = f"{request.token_count:,}" if request.token_count else "N/A"
        self.logger.info(f"Sending request with {tokens} tokens...")
        raw_text = self.client.generate_json(request.prompt, REPORT_SCHEMA)
        report = self.parse_response(raw_text)
        # Absent sections stay absent so validation reports them.
        if isinstance(report.get('growthMetrics'), list):
            report['growthMetrics'] = decorate_growth_metrics(report['growthMetrics'])
        return report

    def _truncate_text(self, text: str) -> str:
        max_length = self.config.get('max_content_chars')
        if not max_length or len(text) <= max_length:
            return text
        self.logger.warning(f"Content is {len(text)} characters, truncating to {max_length}.")
        return f"{text[:int(max_length * 0.7)]}\n...\n{text[-int(max_length * 0.3):]}"

    def parse_response(self, raw_text: str) -> Dict[str, Any]:
        try:
            data = json.loads(raw_text)
        except json.JSONDecodeError:
            self.logger.debug("Response is not bare JSON, searching for an embedded object.")
            try:
                data = json.loads(clean_json_response(raw_text))
            except json.JSONDecodeError as e:
                raise ValueError(f"Model output is not valid JSON: {e}") from e
        if not isinstance(data, dict) or not data:
            raise ValueError("Model output did not contain a report object.")
        return data
