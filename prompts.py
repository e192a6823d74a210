"""
Prompt templates for the Gemini analysis calls.

Every prompt embeds only locally computed aggregates, never raw samples.
"""

from typing import Any, Dict

from schemas import TestResults
from utils import json_dumps


COMBINED_ANALYSIS_TEMPLATE = """Analyze these k6 performance test results and provide both insights and threshold recommendations:

Test Results:
- Response Time: {response_time}ms
- Max Response Time: {max_response_time}ms
- Error Rate: {error_rate}%
- Throughput: {throughput} requests
- Status: {status}

Provide:
1. Brief performance summary (max 100 words)
2. Top 3 actionable recommendations
3. Recommended k6 thresholds as JSON

Format response as JSON:
{{
  "summary": "brief summary",
  "recommendations": ["item1", "item2", "item3"],
  "thresholds": {{
    "http_req_duration": ["p(95)<X", "p(99)<Y"],
    "http_req_failed": ["rate<Z"],
    "checks": ["rate>W"]
  }}
}}
"""

THRESHOLD_TEMPLATE = """Based on these performance test results, recommend optimal thresholds for k6 testing:

Performance Data:
- Average Response Time: {response_time}ms
- 95th Percentile: {p95}ms
- Error Rate: {error_rate}%
- Throughput: {throughput} requests

Recommend specific k6 threshold values for:
1. http_req_duration (p95 and p99)
2. http_req_failed (error rate)
3. checks (success rate)

Return JSON only, shaped as:
{{"thresholds": {{"http_req_duration": ["p(95)<X", "p(99)<Y"], "http_req_failed": ["rate<Z"], "checks": ["rate>W"]}}, "reasoning": "why"}}
"""

INSIGHTS_TEMPLATE = """Analyze these k6 performance test results and provide actionable insights:

Test Results:
- Response Time: {response_time}ms
- Error Rate: {error_rate}%
- Throughput: {throughput} requests
- Status: {status}

Focus on:
1. Performance issues that need immediate attention
2. Specific recommendations for improvement
3. Production readiness assessment

Keep response under 200 words and focus on actionable items.
"""

TEST_DATA_TEMPLATE = """Generate realistic test data for performance testing:

Data Schema: {schema}
Context: {context}

Generate 3-5 realistic test records that would be found in production.
Return only a JSON array of records, no explanations.
"""


def _common_fields(results: TestResults) -> Dict[str, Any]:
    return {
        "response_time": round(results.avg_response_time),
        "max_response_time": round(results.max_response_time),
        "error_rate": round(results.error_rate),
        "throughput": results.throughput,
        "status": results.status,
    }


def build_combined_analysis_prompt(results: TestResults) -> str:
    return COMBINED_ANALYSIS_TEMPLATE.format(**_common_fields(results))


def build_threshold_prompt(results: TestResults, p95: float) -> str:
    return THRESHOLD_TEMPLATE.format(p95=round(p95), **_common_fields(results))


def build_insights_prompt(results: TestResults) -> str:
    return INSIGHTS_TEMPLATE.format(**_common_fields(results))


def build_test_data_prompt(schema: Dict[str, Any], context: Dict[str, Any]) -> str:
    return TEST_DATA_TEMPLATE.format(
        schema=json_dumps(schema, indent=True),
        context=json_dumps(context, indent=True),
    )
