import json
from pathlib import Path

import pytest

from opsreport.extraction import (
    REPORT_SCHEMA, ReportExtractor, build_prompt, decorate_growth_metrics,
)
from opsreport.ingestion import Document
from opsreport.validation import ReportValidator


class FakeClient:
    def __init__(self, response_text, token_count=1234):
        self.response_text = response_text
        self.token_count = token_count
        self.prompts = []

    def count_tokens(self, prompt):
        return self.token_count

    def generate_json(self, prompt, schema):
        self.prompts.append((prompt, schema))
        return self.response_text


def _document(text):
    return Document(path=Path("bao_cao_05_2025.docx"), text=text, method="docx_text")


def test_schema_covers_all_report_sections():
    assert set(REPORT_SCHEMA["properties"]) == {
        "kpiData", "transactionByChannelData", "growthMetrics",
        "errorDetails", "systemUpdateData", "nextSteps",
    }
    kpis = REPORT_SCHEMA["properties"]["kpiData"]["properties"]
    assert kpis["avgDayEndDuration"]["properties"]["rawMinutes"] == {"type": "NUMBER"}
    assert REPORT_SCHEMA["properties"]["growthMetrics"]["type"] == "ARRAY"


def test_build_prompt_wraps_content():
    prompt = build_prompt("TPS cao nhất: 835")
    assert prompt.endswith("---\nTPS cao nhất: 835\n---")
    assert "MỘT ĐỐI TƯỢNG JSON DUY NHẤT" in prompt


def test_decorate_growth_metrics():
    metrics = decorate_growth_metrics([
        {"name": "Tổng giao dịch tài chính"},
        {"name": "Tổng số khách hàng"},
        {"name": "Tài khoản KKH"},
        {"name": "Tài khoản CKH"},
        {"name": "Tài khoản tiền vay"},
        {"name": "Tăng trưởng thẻ"},
        {"name": "Số lượng ví điện tử"},
        {},
    ])
    assert [(m["icon"], m["tone"]) for m in metrics] == [
        ("trending-up", "positive"),
        ("users", "positive"),
        ("arrow-down", "negative"),
        ("arrow-up", "positive"),
        ("arrow-up", "positive"),
        ("trending-up", "positive"),
        ("file-text", "neutral"),
        ("file-text", "neutral"),
    ]
    assert metrics[0]["name"] == "Tổng giao dịch tài chính"


def test_decorate_growth_metrics_handles_none():
    assert decorate_growth_metrics(None) == []


def test_prepare_trims_content_and_counts_tokens():
    text = "Trang bìa\nMột số chỉ số hoạt động chính của hệ thống\n" + "TPS cao nhất: 835 giao dịch/giây\n" * 3
    extractor = ReportExtractor({}, client=FakeClient("{}", token_count=987))

    request = extractor.prepare(_document(text))

    assert "Trang bìa" not in request.content
    assert request.content in request.prompt
    assert request.token_count == 987


def test_prepare_truncates_long_content():
    extractor = ReportExtractor({"extraction": {"max_content_chars": 100}}, client=FakeClient("{}"))
    request = extractor.prepare(_document("x" * 500))
    assert len(request.content) < 500
    assert "\n...\n" in request.content


def test_run_parses_and_decorates(may_report):
    for metric in may_report["growthMetrics"]:
        metric.pop("icon"), metric.pop("tone")
    client = FakeClient(json.dumps(may_report, ensure_ascii=False))
    extractor = ReportExtractor({}, client=client)

    report = extractor.run(extractor.prepare(_document("Các công việc tiếp theo\n" + "nội dung " * 20)))

    assert report["kpiData"]["peakTPS"]["value"] == "835"
    assert report["growthMetrics"][2]["tone"] == "negative"
    assert client.prompts[0][1] is REPORT_SCHEMA


def test_run_with_unknown_token_count():
    extractor = ReportExtractor({}, client=FakeClient('{"nextSteps": "ok"}', token_count=None))
    report = extractor.run(extractor.prepare(_document("nội dung báo cáo")))
    assert report == {"nextSteps": "ok"}


@pytest.mark.parametrize("growth_metrics", ["absent", None])
def test_run_keeps_missing_growth_metrics_missing(may_report, growth_metrics):
    if growth_metrics == "absent":
        del may_report["growthMetrics"]
    else:
        may_report["growthMetrics"] = None
    extractor = ReportExtractor({}, client=FakeClient(json.dumps(may_report, ensure_ascii=False)))

    report = extractor.run(extractor.prepare(_document("nội dung báo cáo")))
    summary = ReportValidator({}).validate(report)

    assert report.get("growthMetrics") is None
    assert not summary["is_valid"]
    assert "Missing required section: 'growthMetrics'" in summary["errors"]


def test_run_passes_malformed_metrics_to_validation(may_report):
    may_report["growthMetrics"] = ["Tăng trưởng 5%", {"name": "Tổng số khách hàng"}]
    extractor = ReportExtractor({}, client=FakeClient(json.dumps(may_report, ensure_ascii=False)))

    report = extractor.run(extractor.prepare(_document("nội dung báo cáo")))
    summary = ReportValidator({}).validate(report)

    assert report["growthMetrics"][0] == "Tăng trưởng 5%"
    assert report["growthMetrics"][1]["icon"] == "users"
    assert summary["errors"] == ["Growth metric #1 is not an object: Tăng trưởng 5%"]


def test_parse_response_recovers_fenced_json():
    extractor = ReportExtractor({}, client=FakeClient("{}"))
    assert extractor.parse_response('```json\n{"nextSteps": "x"}\n```') == {"nextSteps": "x"}


@pytest.mark.parametrize("raw", ["not json at all", "[]", "{}"])
def test_parse_response_rejects_non_reports(raw):
    extractor = ReportExtractor({}, client=FakeClient("{}"))
    with pytest.raises(ValueError):
        extractor.parse_response(raw)
