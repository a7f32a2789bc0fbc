import json
from pathlib import Path
from datetime import datetime
from typing import Dict, List, Any, Optional
import logging
from jinja2 import Environment

logger = logging.getLogger(__name__)

REPORT_FORMATS = ("html", "json", "junit")

HTML_TEMPLATE = """<!DOCTYPE html>
<html>
<head>
    <meta charset="UTF-8">
    <title>Gherkin Conductor Report - {{ timestamp }}</title>
    <style>
        body { font-family: Arial, sans-serif; margin: 20px; background: #f5f5f5; }
        header { background: #2d3e50; color: white; padding: 16px 20px; border-radius: 5px; }
        .summary { display: flex; gap: 16px; margin: 20px 0; }
        .card { background: white; flex: 1; padding: 16px; text-align: center; border-radius: 5px; }
        .card .number { font-size: 32px; font-weight: bold; }
        .passed { color: #28a745; }
        .failed { color: #dc3545; }
        .skipped { color: #b8860b; }
        .feature { background: white; margin-bottom: 16px; border-radius: 5px; overflow: hidden; }
        .feature h2 { margin: 0; padding: 12px 20px; background: #f8f9fa; border-left: 5px solid #adb5bd; }
        .feature h2.passed { border-left-color: #28a745; }
        .feature h2.failed { border-left-color: #dc3545; }
        .scenario { padding: 10px 20px; border-top: 1px solid #eee; }
        .path { color: #6c757d; font-size: 12px; }
        .tag { background: #e9ecef; padding: 2px 6px; border-radius: 3px; font-size: 11px; }
        .step { margin-left: 20px; font-family: monospace; }
        .error { background: #f8d7da; color: #721c24; padding: 8px; margin: 6px 0 6px 20px; white-space: pre-wrap; }
    </style>
</head>
<body>
    <header>
        <h1>Gherkin Conductor Report</h1>
        <p>Generated {{ timestamp }} in {{ duration }}</p>
    </header>

    <div class="summary">
        <div class="card"><div class="number">{{ summary.total }}</div>Scenarios</div>
        <div class="card"><div class="number passed">{{ summary.passed }}</div>Passed</div>
        <div class="card"><div class="number failed">{{ summary.failed }}</div>Failed</div>
        <div class="card"><div class="number skipped">{{ summary.skipped }}</div>Skipped</div>
        <div class="card"><div class="number">{{ pass_rate }}%</div>Pass rate</div>
    </div>

    {% for feature in features %}
    <section class="feature">
        <h2 class="{{ feature.status }}">{{ feature.name }}</h2>
        {% for scenario in feature.scenarios %}
        <div class="scenario">
            <strong>{{ scenario.name }}</strong>
            <span class="{{ scenario.status }}">{{ scenario.status|upper }}</span>
            {% if scenario.path %}<div class="path">{{ scenario.path|join(" > ") }}</div>{% endif %}
            {% for tag in scenario.tags %}<span class="tag">{{ tag }}</span> {% endfor %}
            {% for step in scenario.steps %}
            <div class="step {{ step.status }}">{{ step.keyword }} {{ step.name }}</div>
            {% if step.error %}<div class="error">{{ step.error }}</div>{% endif %}
            {% endfor %}
            {% if scenario.error and not scenario.steps|selectattr("error")|list %}
            <div class="error">{{ scenario.error }}</div>
            {% endif %}
        </div>
        {% endfor %}
    </section>
    {% endfor %}
</body>
</html>
"""

JUNIT_TEMPLATE = """<?xml version="1.0" encoding="UTF-8"?>
<testsuites name="gherkin-conductor" time="{{ duration }}" tests="{{ summary.total }}" failures="{{ summary.failed }}" skipped="{{ summary.skipped }}">
{% for feature in features %}
    <testsuite name="{{ feature.name }}" tests="{{ feature.scenarios|length }}" failures="{{ feature.failures }}" time="{{ feature.duration }}">
    {% for scenario in feature.scenarios %}
        <testcase classname="{{ feature.name|replace(' ', '_') }}" name="{{ scenario.name }}" time="{{ scenario.duration }}">
        {% if scenario.status == 'failed' %}
            <failure message="{{ scenario.error|default('Scenario failed', true) }}">{% for step in scenario.steps if step.status == 'failed' %}{{ step.keyword }} {{ step.name }}: {{ step.error }}{% endfor %}</failure>
        {% elif scenario.status == 'skipped' %}
            <skipped/>
        {% endif %}
        </testcase>
    {% endfor %}
    </testsuite>
{% endfor %}
</testsuites>
"""


def _now() -> str:
    return datetime.now().isoformat()


def _seconds(start: Optional[str], end: Optional[str]) -> float:
    if not start or not end:
        return 0
    return (datetime.fromisoformat(end) - datetime.fromisoformat(start)).total_seconds()


class ReportCollector:
    """
    Collects results from lifecycle events and generates reports.

    Attach it to the bus before running::

        collector = ReportCollector("test-results")
        event_bus.subscribe_all(collector)
    """

    def __init__(self, output_dir: str = "test-results"):
        self.output_dir = Path(output_dir)
        self.features: List[Dict[str, Any]] = []
        self.start_time: Optional[str] = None
        self.end_time: Optional[str] = None
        self._feature: Optional[Dict[str, Any]] = None
        self._scenario: Optional[Dict[str, Any]] = None
        self._path: List[str] = []

    # Event handlers

    def on_feature_started(self, feature) -> None:
        self.start_time = self.start_time or _now()
        self._feature = {
            'name': feature.title,
            'file': feature.filename,
            'tags': list(feature.tags),
            'status': 'passed',
            'start_time': _now(),
            'end_time': None,
            'scenarios': [],
        }
        self.features.append(self._feature)

    def on_feature_ended(self, feature) -> None:
        if self._feature is None:
            return
        self._feature['end_time'] = _now()
        scenarios = self._feature['scenarios']
        if any(s['status'] == 'failed' for s in scenarios):
            self._feature['status'] = 'failed'
        elif scenarios and all(s['status'] == 'skipped' for s in scenarios):
            self._feature['status'] = 'skipped'
        self.end_time = _now()
        self._feature = None

    def on_rule_started(self, rule) -> None:
        self._path.append(rule.display_title)

    def on_rule_ended(self, rule) -> None:
        if self._path:
            self._path.pop()

    def on_scenario_outline_started(self, outline) -> None:
        self._path.append(outline.display_title)

    def on_scenario_outline_ended(self, outline) -> None:
        if self._path:
            self._path.pop()

    def on_scenario_started(self, scenario) -> None:
        self._scenario = {
            'name': scenario.display_title,
            'path': list(self._path),
            'tags': list(scenario.tags),
            'status': 'passed',
            'error': None,
            'start_time': _now(),
            'end_time': None,
            'steps': [],
        }
        if self._feature is not None:
            self._feature['scenarios'].append(self._scenario)

    def on_scenario_ended(self, scenario, error: Optional[BaseException] = None) -> None:
        if self._scenario is None:
            return
        self._scenario['end_time'] = _now()
        if error is not None:
            self._scenario['status'] = 'failed'
            self._scenario['error'] = str(error)
        self._scenario = None

    def on_step_started(self, step) -> None:
        if self._scenario is None:
            return
        self._scenario['steps'].append({
            'keyword': step.keyword,
            'name': step.text,
            'status': 'running',
            'error': None,
        })

    def on_step_ended(self, step, error: Optional[BaseException] = None) -> None:
        if self._scenario is None or not self._scenario['steps']:
            return
        current = self._scenario['steps'][-1]
        current['status'] = 'failed' if error is not None else 'passed'
        if error is not None:
            current['error'] = str(error)

    def record_skipped(self, results) -> None:
        """Add units the runner skipped; skipped units never emit events"""
        for result in results:
            if not result.skipped:
                continue
            feature_title = result.path[0] if result.path else ""
            feature = next((f for f in self.features if f"Feature: {f['name']}" == feature_title), None)
            if feature is None:
                feature = {
                    'name': feature_title.removeprefix("Feature: "),
                    'file': None,
                    'tags': [],
                    'status': 'skipped',
                    'start_time': None,
                    'end_time': None,
                    'scenarios': [],
                }
                self.features.append(feature)
            feature['scenarios'].append({
                'name': result.title,
                'path': list(result.path[1:]),
                'tags': [],
                'status': 'skipped',
                'error': None,
                'start_time': None,
                'end_time': None,
                'steps': [],
            })

    # Reports

    def results(self) -> Dict[str, Any]:
        scenarios = [s for f in self.features for s in f['scenarios']]
        return {
            'start_time': self.start_time,
            'end_time': self.end_time,
            'summary': {
                'total': len(scenarios),
                'passed': sum(1 for s in scenarios if s['status'] == 'passed'),
                'failed': sum(1 for s in scenarios if s['status'] == 'failed'),
                'skipped': sum(1 for s in scenarios if s['status'] == 'skipped'),
            },
            'features': self.features,
        }

    def generate_report(self, format: str = "html") -> str:
        """
        Generate test report in specified format

        Args:
            format: Report format (html, json, junit)

        Returns:
            Path to generated report
        """
        if format not in REPORT_FORMATS:
            raise ValueError(f"Unsupported report format: {format}")

        self.output_dir.mkdir(parents=True, exist_ok=True)
        timestamp = datetime.now().strftime('%Y%m%d_%H%M%S')
        results = self.results()

        if format == "html":
            return self._generate_html_report(results, timestamp)
        elif format == "json":
            return self._generate_json_report(results, timestamp)
        return self._generate_junit_report(results, timestamp)

    def _generate_html_report(self, results: Dict[str, Any], timestamp: str) -> str:
        summary = results['summary']
        executed = summary['passed'] + summary['failed']
        pass_rate = round(summary['passed'] / executed * 100, 1) if executed else 0

        template = Environment(autoescape=True).from_string(HTML_TEMPLATE)
        html_content = template.render(
            timestamp=timestamp,
            duration=f"{_seconds(results['start_time'], results['end_time']):.2f}s",
            summary=summary,
            pass_rate=pass_rate,
            features=results['features'],
        )

        report_path = self.output_dir / f"report_{timestamp}.html"
        with open(report_path, 'w', encoding='utf-8') as f:
            f.write(html_content)

        logger.info(f"HTML report generated: {report_path}")
        return str(report_path)

    def _generate_json_report(self, results: Dict[str, Any], timestamp: str) -> str:
        report_path = self.output_dir / f"report_{timestamp}.json"

        with open(report_path, 'w', encoding='utf-8') as f:
            json.dump(results, f, indent=2)

        logger.info(f"JSON report generated: {report_path}")
        return str(report_path)

    def _generate_junit_report(self, results: Dict[str, Any], timestamp: str) -> str:
        features = []
        for feature in results['features']:
            scenarios = [
                {**scenario, 'duration': _seconds(scenario['start_time'], scenario['end_time'])}
                for scenario in feature['scenarios']
            ]
            features.append({
                **feature,
                'scenarios': scenarios,
                'failures': sum(1 for s in scenarios if s['status'] == 'failed'),
                'duration': _seconds(feature['start_time'], feature['end_time']),
            })

        template = Environment(autoescape=True).from_string(JUNIT_TEMPLATE)
        junit_content = template.render(
            duration=_seconds(results['start_time'], results['end_time']),
            summary=results['summary'],
            features=features,
        )

        report_path = self.output_dir / f"report_{timestamp}.xml"
        with open(report_path, 'w', encoding='utf-8') as f:
            f.write(junit_content)

        logger.info(f"JUnit report generated: {report_path}")
        return str(report_path)
