import click
import logging
from pathlib import Path
from typing import List, Tuple

from . import __version__
from .core import ConfigManager, ConductorError, TagExpressionError, summarize
from .executor import LoggingSubscriber, ReportCollector, StepDebugger, TopLevelRun
from .executor.report_collector import REPORT_FORMATS
from .gherkin import load_feature, load_features, model
from .runners import InlineRunner
from .runtime import EventBus, compile_tag_expression
from .steps import StepMatcher, global_registry


def _load_steps(config: ConfigManager, modules: Tuple[str, ...]) -> List[str]:
    targets = [*config.steps_modules(), *modules]
    for target in targets:
        global_registry.load_module(target)
    return targets


@click.group()
@click.option('--config', '-c', type=click.Path(), help='Configuration file path')
@click.option('--verbose', '-v', is_flag=True, help='Enable verbose logging')
@click.pass_context
def cli(ctx, config, verbose):
    """Gherkin Conductor - run Gherkin features against registered steps"""
    config_path = Path(config) if config else None
    ctx.obj = ConfigManager(config_path)

    level = logging.DEBUG if verbose else ctx.obj.get("logging.level", "INFO")
    logging.basicConfig(
        level=level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )


@cli.command()
def version():
    """Show version information"""
    click.echo(f"Gherkin Conductor v{__version__}")


@cli.command()
@click.argument('features_path', required=False, type=click.Path())
@click.pass_obj
def doctor(config, features_path):
    """Check dependencies and the features directory"""
    features_root = Path(features_path or config.get("runner.features_root", "features"))
    issues = StepDebugger.validate_environment(features_root)
    if not issues:
        click.echo("✅ Environment OK")
        return

    for issue in issues:
        click.echo(f"❌ {issue}")
    raise SystemExit(1)


@cli.command()
@click.argument('features_path', required=False, type=click.Path())
@click.option('--steps', '-s', 'steps_modules', multiple=True,
              help='Step module (dotted name or .py file); repeatable')
@click.option('--tags', '-t', help='Tag expression, e.g. "@smoke and not @wip"')
@click.option('--report', '-r', 'reports', multiple=True, type=click.Choice(REPORT_FORMATS),
              help='Report format to write; repeatable')
@click.option('--output-dir', '-o', type=click.Path(), help='Report directory')
@click.pass_obj
def run(config, features_path, steps_modules, tags, reports, output_dir):
    """Run feature files with the global and class-bound steps"""
    try:
        tag_filter = compile_tag_expression(tags) if tags is not None else config.tag_filter()
    except TagExpressionError as e:
        click.echo(f"Error: {e}", err=True)
        raise SystemExit(2)

    features_path = Path(features_path or config.get("runner.features_root", "features"))
    try:
        _load_steps(config, steps_modules)
        global_registry.seal()
        features = load_features(features_path)
    except ConductorError as e:
        click.echo(f"Error: {e}", err=True)
        raise SystemExit(2)

    event_bus = EventBus()
    if config.get("logging.events", True):
        event_bus.subscribe_all(LoggingSubscriber())
    collector = ReportCollector(output_dir or config.get("reporter.output_dir", "test-results"))
    event_bus.subscribe_all(collector)
    event_bus.freeze()

    runner = InlineRunner()
    for feature in features:
        TopLevelRun(feature, event_bus=event_bus, tag_filter=tag_filter).execute(runner)
    results = runner.run()
    collector.record_skipped(results)

    click.echo("")
    for result in results:
        mark = {"passed": "✓", "failed": "✗", "skipped": "-"}[result.status.value]
        click.echo(f"{mark} {result.full_title}")
        if result.failed:
            click.echo(f"    {type(result.error).__name__}: {result.error}")
            for note in getattr(result.error, "__notes__", []):
                click.echo(f"    {note}")

    summary = summarize(results)
    click.echo(
        f"\n{summary['total']} units: {summary['passed']} passed, "
        f"{summary['failed']} failed, {summary['skipped']} skipped"
    )

    for report_format in reports or config.get("reporter.formats") or []:
        path = collector.generate_report(report_format)
        click.echo(f"📊 {report_format} report: {path}")

    if summary['failed']:
        raise SystemExit(1)


@cli.command()
@click.option('--steps', '-s', 'steps_modules', multiple=True, help='Step module to import; repeatable')
@click.pass_obj
def steps(config, steps_modules):
    """List global and class-bound step definitions"""
    try:
        _load_steps(config, steps_modules)
    except ConductorError as e:
        click.echo(f"Error: {e}", err=True)
        raise SystemExit(2)

    definitions = global_registry.list_definitions()
    if not definitions:
        click.echo("No step definitions registered")
        return

    for definition in definitions:
        binding = " [class]" if definition['binding'] == 'class' else ""
        if definition['async']:
            binding += " [async]"
        click.echo(f"{definition['keyword'].capitalize():<6} {definition['pattern']}{binding}")
        click.echo(f"       -> {definition['function']}")
    click.echo(f"\nTotal: {len(definitions)}")


@cli.command()
@click.argument('expression')
@click.argument('tags', nargs=-1)
def tags(expression, tags):
    """Validate a tag EXPRESSION and optionally evaluate it against TAGS"""
    try:
        compiled = compile_tag_expression(expression)
    except TagExpressionError as e:
        click.echo(f"Error: {e}", err=True)
        raise SystemExit(2)

    click.echo(f"Expression: {compiled if compiled.is_active else '(match all)'}")
    if tags:
        verdict = "included" if compiled(tags) else "excluded"
        click.echo(f"Tags {' '.join(tags)}: {verdict}")


@cli.command()
@click.argument('step_line')
@click.option('--steps', '-s', 'steps_modules', multiple=True, help='Step module to import; repeatable')
@click.pass_obj
def explain(config, step_line, steps_modules):
    """Show which definition a step line such as "Given a user" resolves to"""
    try:
        _load_steps(config, steps_modules)
        matcher = StepMatcher(global_registry.steps, global_registry.class_steps)
        explanation = StepDebugger.explain_step(step_line, matcher)
    except ConductorError as e:
        click.echo(f"Error: {e}", err=True)
        raise SystemExit(2)

    for line in StepDebugger.format_explanation(explanation):
        click.echo(line)
    if not explanation['matched']:
        raise SystemExit(1)


@cli.command()
@click.argument('feature_file', type=click.Path(exists=True))
def validate(feature_file):
    """Parse a feature file and show its structure"""
    try:
        feature = load_feature(feature_file)
    except ConductorError as e:
        click.echo(f"Error parsing feature file: {e}", err=True)
        raise SystemExit(1)

    click.echo(feature.display_title)
    _echo_children(feature.children, "  ")


def _echo_children(children, indent: str) -> None:
    for child in children:
        click.echo(f"{indent}{child.display_title}")
        if child.tags:
            click.echo(f"{indent}  Tags: {' '.join(child.tags)}")
        if isinstance(child, model.Rule):
            _echo_children(child.children, indent + "  ")
        elif isinstance(child, model.ScenarioOutline):
            click.echo(f"{indent}  Examples: {len(child.scenarios)} rows")
        else:
            for step in child.steps:
                click.echo(f"{indent}  {step.keyword} {step.text}")


def main():
    """Main entry point"""
    cli()


if __name__ == "__main__":
    main()
