# cli.py
from __future__ import annotations

import sys
from pathlib import Path
from typing import Dict, List, Optional

import click
from pydantic import ValidationError

from postbuild.host import PermissionDenied
from postbuild.icons import IconResolver, PluginInfo
from postbuild.local import BuildStore, LocalHost, LocalMatrixProject, LocalProject, StreamListener
from postbuild.model import Behavior, Result
from postbuild.recorder import PostbuildConfig, PostbuildRecorder
from postbuild.script import load_script
from postbuild.ui.console import Console, get_console, set_console

RESULT_CHOICES = [r.name for r in Result]
BEHAVIOR_CHOICES = [b.name for b in Behavior]


def parse_env(pairs: tuple[str, ...]) -> Dict[str, str]:
    """Turn ("K=V", ...) into a dict; values may contain '='."""
    env: Dict[str, str] = {}
    for pair in pairs:
        key, sep, value = pair.partition("=")
        if not sep or not key:
            raise click.BadParameter(f"expected KEY=VALUE, got {pair!r}", param_hint="--env")
        env[key] = value
    return env


def parse_axes(specs: tuple[str, ...]) -> Dict[str, List[str]]:
    """Turn ("axis1=value1,value2", ...) into {"axis1": ["value1", "value2"]}."""
    axes: Dict[str, List[str]] = {}
    for spec in specs:
        name, sep, values = spec.partition("=")
        items = [v.strip() for v in values.split(",") if v.strip()]
        if not sep or not name or not items:
            raise click.BadParameter(f"expected NAME=V1,V2,..., got {spec!r}", param_hint="--axis")
        axes[name] = items
    return axes


def load_config(
    script: Optional[str],
    script_file: Optional[str],
    config_file: Optional[str],
    behavior: Optional[str],
    run_for_parent: Optional[bool],
) -> PostbuildConfig:
    """
    Build the step configuration from CLI options.

    --config supplies a stored job configuration; --script/--script-file,
    --behavior and --parent override its fields.
    """
    data: dict = {}
    if config_file:
        data = PostbuildConfig.model_validate_json(Path(config_file).read_text(encoding="utf-8")).model_dump()

    if script is not None and script_file is not None:
        raise click.UsageError("Use either --script or --script-file, not both.")
    if script is not None:
        data["script"] = script
    elif script_file is not None:
        try:
            data["script"] = load_script(script_file)
        except (FileNotFoundError, ValueError) as e:
            raise click.BadParameter(str(e), param_hint="--script-file") from e
    if "script" not in data:
        raise click.UsageError("No script given. Use --script, --script-file or --config.")

    if behavior is not None:
        data["behavior"] = behavior
    if run_for_parent is not None:
        data["run_for_matrix_parent"] = run_for_parent
    return PostbuildConfig.model_validate(data)


def make_host(plugin_dir: Optional[str], plugin_name: str, resource_path: str) -> LocalHost:
    plugin = PluginInfo(short_name=plugin_name, base_resource_dir=Path(plugin_dir)) if plugin_dir else None
    return LocalHost(icons=IconResolver(plugin=plugin, resource_path=resource_path))


def read_log(log: Optional[str]) -> str:
    if log is None:
        return ""
    return Path(log).read_text(encoding="utf-8", errors="replace")


def common_options(f):
    """Options shared by `run` and `matrix`."""
    options = [
        click.option("--script", default=None, help="Script source to run"),
        click.option("--script-file", default=None, type=click.Path(dir_okay=False), help="Script file (.py)"),
        click.option("--config", "config_file", default=None, type=click.Path(exists=True, dir_okay=False), help="Step configuration (JSON)"),
        click.option("--behavior", default=None, type=click.Choice(BEHAVIOR_CHOICES, case_sensitive=False), help="Result to set when the script fails [default: FAILURE]"),
        click.option("--job", default="local", show_default=True, help="Job name"),
        click.option("--log", default=None, type=click.Path(exists=True, dir_okay=False), help="Console log of the build"),
        click.option("--env", "env_pairs", multiple=True, help="Build environment variable KEY=VALUE (repeatable)"),
        click.option("--result", default="SUCCESS", show_default=True, type=click.Choice(RESULT_CHOICES, case_sensitive=False), help="Result of the build before the script runs"),
        click.option("--db", default=None, help="Build store URL (defaults to $POSTBUILD_DATABASE_URL or sqlite:///.postbuild/builds.db)"),
        click.option("--root", default=".postbuild/jobs", show_default=True, help="Directory for build logs"),
        click.option("--plugin-dir", default=None, type=click.Path(file_okay=False), help="Plugin resource directory holding images/"),
        click.option("--plugin-name", default="postbuild", show_default=True, help="Plugin short name used in icon URLs"),
        click.option("--resource-path", default="/static", show_default=True, help="Host resource path for built-in icons"),
    ]
    for option in reversed(options):
        f = option(f)
    return f


@click.group()
@click.option(
    "--debug",
    is_flag=True,
    default=False,
    help="Enable debug mode (show stack traces and detailed output)",
)
@click.pass_context
def cli(ctx, debug):
    """postbuild: run post-build scripts that badge builds and set their result."""
    console = Console(debug=debug)
    set_console(console)
    ctx.ensure_object(dict)
    ctx.obj["debug"] = debug


@cli.command()
@common_options
@click.pass_context
def run(ctx, script, script_file, config_file, behavior, job, log, env_pairs, result, db,
        root, plugin_dir, plugin_name, resource_path):
    """Run the script against a new build of JOB."""
    console = get_console()
    try:
        config = load_config(script, script_file, config_file, behavior, None)
        host = make_host(plugin_dir, plugin_name, resource_path)
        project = LocalProject(job, root=root, store=BuildStore(db), env=parse_env(env_pairs))
        project.publishers.append(PostbuildRecorder(config, host=host))

        console.print_run_started(job=job, script=_describe_script(script_file, config_file), builds=1)
        build = project.run(StreamListener(), log=read_log(log), result=Result[result.upper()])
        console.print_build(build)
        console.print_results({f"{job} #{build.number}": build.result.name})

        if not build.result.is_better_than(Result.FAILURE):
            sys.exit(1)
    except (click.UsageError, click.BadParameter):
        raise
    except ValidationError as e:
        console.print_error("Invalid configuration", str(e))
        sys.exit(2)
    except PermissionDenied as e:
        console.print_error("Permission denied", str(e))
        sys.exit(1)
    except KeyboardInterrupt:
        console.print_info("\nInterrupted by user")
        sys.exit(130)
    except Exception as e:
        console.print_exception(e)
        sys.exit(1)


@cli.command()
@common_options
@click.option("--axis", "axis_specs", multiple=True, required=True, help="Axis NAME=V1,V2 (repeatable)")
@click.option("--parent/--no-parent", "run_for_parent", default=None, help="Also run the script for the matrix parent after all runs")
@click.option("--workers", default=None, type=int, help="Number of parallel runs")
@click.pass_context
def matrix(ctx, script, script_file, config_file, behavior, job, log, env_pairs, result, db,
           root, plugin_dir, plugin_name, resource_path, axis_specs, run_for_parent, workers):
    """Run the script for every axis combination of a matrix build of JOB."""
    console = get_console()
    try:
        config = load_config(script, script_file, config_file, behavior, run_for_parent)
        host = make_host(plugin_dir, plugin_name, resource_path)
        project = LocalMatrixProject(
            job,
            axes=parse_axes(axis_specs),
            root=root,
            store=BuildStore(db),
            env=parse_env(env_pairs),
        )
        project.publishers.append(PostbuildRecorder(config, host=host))

        combos = project.combinations()
        console.print_run_started(job=job, script=_describe_script(script_file, config_file), builds=len(combos))
        build = project.run(StreamListener(), log=read_log(log), result=Result[result.upper()], max_workers=workers)

        console.print_build(build)
        results = {f"{job} #{build.number}": build.result.name}
        for combo in combos:
            child = build.get_run(combo)
            console.print_build(child, label=child.project.name)
            results[child.project.name] = child.result.name
        console.print_results(results)

        if not build.result.is_better_than(Result.FAILURE):
            sys.exit(1)
    except (click.UsageError, click.BadParameter):
        raise
    except ValidationError as e:
        console.print_error("Invalid configuration", str(e))
        sys.exit(2)
    except PermissionDenied as e:
        console.print_error("Permission denied", str(e))
        sys.exit(1)
    except KeyboardInterrupt:
        console.print_info("\nInterrupted by user")
        sys.exit(130)
    except Exception as e:
        console.print_exception(e)
        sys.exit(1)


@cli.command()
@click.argument("job")
@click.argument("number", type=int, required=False)
@click.option("--db", default=None, help="Build store URL")
def show(job, number, db):
    """Show the stored result and annotations of a build (latest by default)."""
    console = get_console()
    store = BuildStore(db)
    if number is None:
        number = store.last_number(job)
    stored = store.load(job, number)
    if stored is None:
        known = store.job_names()
        console.print_error(
            "Build not found",
            f"No stored build {job} #{number}.",
            details=[f"Known jobs: {', '.join(known)}"] if known else None,
        )
        sys.exit(1)

    console.print_header(f"{stored.job_name} #{stored.number}")
    console.print_info(f"Result: {stored.result.name}")
    for badge in stored.badges:
        icon = "text" if badge.is_text_only else badge.icon_path
        console.print_info(f"  BADGE [{icon}] {badge.text}")
    for summary in stored.summaries:
        console.print_info(f"  SUMMARY [{summary.icon_path}]")
        for line in summary.text.splitlines():
            console.print_info(f"    {line}")


def _describe_script(script_file: Optional[str], config_file: Optional[str]) -> str:
    if script_file:
        return script_file
    if config_file:
        return config_file
    return "<inline>"


if __name__ == "__main__":
    cli()
