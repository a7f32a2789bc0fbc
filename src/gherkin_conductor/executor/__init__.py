from .scenario import ScenarioExecutor, run_hook
from .outline import ScenarioOutlineExecutor
from .category import Category, Feature, ActiveRule, PassiveRule, TopLevelRun
from .log_subscriber import LoggingSubscriber
from .report_collector import ReportCollector
from .debug_utils import StepDebugger

__all__ = [
    'ScenarioExecutor',
    'ScenarioOutlineExecutor',
    'Category',
    'Feature',
    'ActiveRule',
    'PassiveRule',
    'TopLevelRun',
    'LoggingSubscriber',
    'ReportCollector',
    'StepDebugger',
    'run_hook',
]
