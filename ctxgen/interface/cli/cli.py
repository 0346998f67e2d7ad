import click
import logging
from datetime import date
from pathlib import Path
from pydantic import BaseModel

from ctxgen.application.config_loader import load_config
from ctxgen.application.config_models import CtxgenConfig
from ctxgen.domain.errors import AllProvidersFailed, NoProvidersConfigured, RetryLimitReached
from ctxgen.domain.models.execution import ExecutionOptions
from ctxgen.interface.cli.output_models import (
    ComponentOutput,
    FailedAttempt,
    GenerateOutput,
    HistoryOutput,
    MessageSummary,
    ProviderStatusSummary,
    ProvidersOutput,
    WorkflowOutput,
)

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_ERROR = 1
EXIT_ALL_PROVIDERS_FAILED = 2
EXIT_RETRY_LIMIT = 3


def _json_emit(model: BaseModel) -> None:
    # Single-line JSON, omit None fields.
    click.echo(model.model_dump_json(exclude_none=True), nl=True)


def _get_json_mode(ctx: click.Context) -> bool:
    obj = ctx.obj or {}
    return bool(obj.get("json", False))


def _exit_code_for(e: Exception) -> int:
    if isinstance(e, (AllProvidersFailed, NoProvidersConfigured)):
        return EXIT_ALL_PROVIDERS_FAILED
    if isinstance(e, RetryLimitReached):
        return EXIT_RETRY_LIMIT
    return EXIT_ERROR


def _failed_attempts(e: Exception) -> list[FailedAttempt]:
    if not isinstance(e, AllProvidersFailed):
        return []
    return [
        FailedAttempt(provider=a.provider_name, kind=a.kind.value, message=a.message)
        for a in e.attempts
    ]


def _fail(ctx: click.Context, e: Exception, output: BaseModel) -> None:
    """Report an error and exit with the code matching its type."""
    exit_code = _exit_code_for(e)
    if _get_json_mode(ctx):
        _json_emit(output)
        raise click.exceptions.Exit(exit_code)
    if exit_code == EXIT_ERROR:
        raise click.ClickException(str(e)) from e
    click.echo(f"Error: {e}", err=True)
    raise click.exceptions.Exit(exit_code)


def _configure_logging(verbose: bool) -> None:
    if verbose:
        logging.basicConfig(format="%(levelname)s: %(name)s: %(message)s")
    logging.getLogger("ctxgen").setLevel(logging.DEBUG if verbose else logging.WARNING)


def _load_cfg(timeout_ms: int | None = None) -> CtxgenConfig:
    overrides = {"default_timeout_ms": timeout_ms} if timeout_ms else None
    return load_config(project_root=Path.cwd(), user_home=Path.home(), overrides=overrides)


def _build_service(cfg: CtxgenConfig, events: bool):
    from ctxgen.application.providers import ProviderExecutionService
    from ctxgen.domain.events import StderrEventObserver, WorkflowEventEmitter

    event_emitter = WorkflowEventEmitter()
    if events:
        event_emitter.subscribe(StderrEventObserver())
    return ProviderExecutionService.from_config(cfg, event_emitter=event_emitter)


def _options(model: str | None, temperature: float | None, max_tokens: int | None) -> ExecutionOptions:
    return ExecutionOptions(model=model, temperature=temperature, max_tokens=max_tokens)


def provider_options(f):
    """Options shared by commands that call a provider."""
    f = click.option("--events", is_flag=True, help="Emit provider events to stderr.")(f)
    f = click.option("--timeout-ms", "timeout_ms", type=int, default=None, help="Per-call deadline.")(f)
    f = click.option("--max-tokens", "max_tokens", type=int, default=None)(f)
    f = click.option("--temperature", type=float, default=None)(f)
    f = click.option("--model", type=str, default=None, help="Model name passed to the provider.")(f)
    f = click.option("--provider", type=str, default=None, help="Preferred provider (overrides CTXGEN_PROVIDER).")(f)
    return f


@click.group(help="ctxgen - LLM provider orchestration and agent workflows.")
@click.option("--json", "json_output", is_flag=True, help="Emit machine-readable JSON on stdout.")
@click.option("--verbose", "-v", is_flag=True, help="Log debug output to stderr.")
@click.pass_context
def cli(ctx: click.Context, json_output: bool, verbose: bool) -> None:
    ctx.ensure_object(dict)
    ctx.obj["json"] = bool(json_output)
    _configure_logging(verbose)


@cli.command("generate")
@click.argument("prompt", type=str)
@click.option("--system-prompt", "system_prompt", type=str, default=None)
@provider_options
@click.pass_context
def generate_cmd(
    ctx: click.Context,
    prompt: str,
    system_prompt: str | None,
    provider: str | None,
    model: str | None,
    temperature: float | None,
    max_tokens: int | None,
    timeout_ms: int | None,
    events: bool,
) -> None:
    """Generate text for PROMPT with provider failover."""
    try:
        service = _build_service(_load_cfg(timeout_ms), events)
        options = _options(model, temperature, max_tokens).model_copy(update={"system_prompt": system_prompt})
        result = service.generate_text(prompt, options, provider=provider)

        if _get_json_mode(ctx):
            _json_emit(
                GenerateOutput(
                    exit_code=EXIT_OK,
                    provider=result.provider_name,
                    text=result.text,
                    elapsed_ms=result.elapsed_ms,
                )
            )
            raise click.exceptions.Exit(EXIT_OK)

        click.echo(result.text)
        logger.info(f"Generated by {result.provider_name} in {result.elapsed_ms}ms")

    except click.exceptions.Exit:
        raise
    except Exception as e:
        _fail(ctx, e, GenerateOutput(exit_code=_exit_code_for(e), error=str(e), attempts=_failed_attempts(e)))


def _emit_component(
    ctx: click.Context,
    command: str,
    result,
    output_path: Path | None,
) -> None:
    payload = result.payload
    code = payload.code if payload else result.text

    if output_path is not None:
        output_path.parent.mkdir(parents=True, exist_ok=True)
        output_path.write_text(code + "\n", encoding="utf-8")

    if _get_json_mode(ctx):
        _json_emit(
            ComponentOutput(
                command=command,
                exit_code=EXIT_OK,
                provider=result.provider_name,
                code=code,
                explanation=payload.explanation if payload else None,
                was_truncated=payload.was_truncated if payload else False,
                output_path=str(output_path) if output_path else None,
            )
        )
        raise click.exceptions.Exit(EXIT_OK)

    if payload and payload.was_truncated:
        click.echo(f"warning: {payload.explanation}", err=True)
    if output_path is not None:
        click.echo(f"Wrote {output_path}")
    else:
        click.echo(code)


@cli.command("component")
@click.argument("prompt", type=str)
@click.option("--output", "-o", "output", type=click.Path(dir_okay=False, path_type=Path), default=None)
@provider_options
@click.pass_context
def component_cmd(
    ctx: click.Context,
    prompt: str,
    output: Path | None,
    provider: str | None,
    model: str | None,
    temperature: float | None,
    max_tokens: int | None,
    timeout_ms: int | None,
    events: bool,
) -> None:
    """Generate a component for PROMPT and extract its code."""
    try:
        service = _build_service(_load_cfg(timeout_ms), events)
        result = service.generate_component(prompt, _options(model, temperature, max_tokens), provider=provider)
        _emit_component(ctx, "component", result, output)

    except click.exceptions.Exit:
        raise
    except Exception as e:
        _fail(ctx, e, ComponentOutput(exit_code=_exit_code_for(e), error=str(e), attempts=_failed_attempts(e)))


@cli.command("refine")
@click.argument("file", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.argument("prompt", type=str)
@click.option("--in-place", "in_place", is_flag=True, help="Overwrite FILE with the refined code.")
@provider_options
@click.pass_context
def refine_cmd(
    ctx: click.Context,
    file: Path,
    prompt: str,
    in_place: bool,
    provider: str | None,
    model: str | None,
    temperature: float | None,
    max_tokens: int | None,
    timeout_ms: int | None,
    events: bool,
) -> None:
    """Refine the component in FILE according to PROMPT."""
    try:
        component_code = file.read_text(encoding="utf-8")
        service = _build_service(_load_cfg(timeout_ms), events)
        result = service.generate_component_refinement(
            component_code,
            prompt,
            _options(model, temperature, max_tokens),
            provider=provider,
        )
        _emit_component(ctx, "refine", result, file if in_place else None)

    except click.exceptions.Exit:
        raise
    except Exception as e:
        _fail(
            ctx,
            e,
            ComponentOutput(
                command="refine",
                exit_code=_exit_code_for(e),
                error=str(e),
                attempts=_failed_attempts(e),
            ),
        )


@cli.command("providers")
@click.option("--adapters", "list_adapters", is_flag=True, help="List the provider keys usable in config instead.")
@click.pass_context
def providers_cmd(ctx: click.Context, list_adapters: bool) -> None:
    """List configured providers in priority order with their availability."""
    try:
        from ctxgen.domain.providers import ProviderFactory

        if list_adapters:
            keys = ProviderFactory.list_providers()
            if _get_json_mode(ctx):
                _json_emit(ProvidersOutput(exit_code=EXIT_OK, adapters=keys))
                raise click.exceptions.Exit(EXIT_OK)
            for key in keys:
                description = (ProviderFactory.get_metadata(key) or {}).get("description", "")
                click.echo(f"{key:<14}{description}")
            return

        service = _build_service(_load_cfg(), events=False)
        statuses = service.provider_status()
        summaries = [
            ProviderStatusSummary(
                name=s.name,
                priority=s.priority,
                available=s.available,
                description=(ProviderFactory.get_metadata(s.name) or {}).get("description", ""),
            )
            for s in statuses
        ]
        active = service.active_provider_name()

        if _get_json_mode(ctx):
            _json_emit(ProvidersOutput(exit_code=EXIT_OK, providers=summaries, active=active))
            raise click.exceptions.Exit(EXIT_OK)

        if not summaries:
            click.echo("No providers configured.")
            return

        click.echo(f"{'PROVIDER':<14}{'PRIORITY':<10}{'STATUS':<12}{'DESCRIPTION'}")
        for p in summaries:
            status = "available" if p.available else "unavailable"
            marker = " *" if p.name == active else ""
            click.echo(f"{p.name:<14}{p.priority:<10}{status:<12}{p.description}{marker}")

    except click.exceptions.Exit:
        raise
    except Exception as e:
        _fail(ctx, e, ProvidersOutput(exit_code=EXIT_ERROR, error=str(e)))


@cli.command("workflow")
@click.argument("prompt", type=str)
@click.option("--agent", "agents", multiple=True, help="Stage name, repeatable, in order.")
@click.option("--start", "initial_agent", type=str, default=None, help="Stage to start from.")
@click.option("--retry-limit", "retry_limit", type=int, default=None)
@click.option("--no-auto-transition", "no_auto_transition", is_flag=True)
@click.option("--events", is_flag=True, help="Emit workflow events to stderr.")
@click.pass_context
def workflow_cmd(
    ctx: click.Context,
    prompt: str,
    agents: tuple[str, ...],
    initial_agent: str | None,
    retry_limit: int | None,
    no_auto_transition: bool,
    events: bool,
) -> None:
    """Run the multi-stage workflow for PROMPT."""
    try:
        from ctxgen.application.workflow import (
            IntentResolver,
            ProviderBackedStage,
            WorkflowCoordinator,
            WorkflowEngine,
        )
        from ctxgen.domain.models.workflow import EngineState, ExecutionContext
        from ctxgen.domain.persistence.message_log_store import MessageLogStore

        cfg = _load_cfg()
        workflow_config = cfg.workflow.to_workflow_config(
            agents=tuple(agents) or None,
            retry_limit=retry_limit,
            enable_auto_transition=False if no_auto_transition else None,
        )
        service = _build_service(cfg, events)
        engine = WorkflowEngine(
            ProviderBackedStage(service),
            resolver=IntentResolver(workflow_config.agents, cfg.intent),
            coordinator=WorkflowCoordinator(store=MessageLogStore(cfg.logs_dir)),
            event_emitter=service.event_emitter,
        )
        result = engine.run(workflow_config, ExecutionContext(user_prompt=prompt), initial_agent)

        exit_code = EXIT_RETRY_LIMIT if result.state == EngineState.FAILED else EXIT_OK
        if _get_json_mode(ctx):
            _json_emit(
                WorkflowOutput(
                    exit_code=exit_code,
                    success=result.success,
                    state=result.state.value,
                    stop_reason=result.stop_reason.value,
                    attempts=result.attempts,
                    retry_count=result.retry_count,
                    stages=list(result.outputs),
                    outputs=result.outputs,
                    last_error=result.last_error,
                )
            )
            raise click.exceptions.Exit(exit_code)

        click.echo(
            f"state={result.state.value} "
            f"stop_reason={result.stop_reason.value} "
            f"attempts={result.attempts} "
            f"retries={result.retry_count}"
        )
        for stage in result.outputs:
            click.echo(f"completed: {stage}")
        result.raise_for_status()

    except click.exceptions.Exit:
        raise
    except Exception as e:
        _fail(ctx, e, WorkflowOutput(exit_code=_exit_code_for(e), error=str(e)))


@cli.command("history")
@click.option("--agent", type=str, default=None, help="Only messages from or to this stage.")
@click.option("--date", "day", type=click.DateTime(formats=["%Y-%m-%d"]), default=None)
@click.option("--days", "list_days", is_flag=True, help="List the days that have a message log instead.")
@click.pass_context
def history_cmd(ctx: click.Context, agent: str | None, day, list_days: bool) -> None:
    """Show the logged inter-stage messages for a day (default: today, UTC)."""
    from datetime import datetime, timezone

    log_day: date = day.date() if day else datetime.now(timezone.utc).date()
    try:
        from ctxgen.domain.persistence.message_log_store import MessageLogStore

        cfg = _load_cfg()
        store = MessageLogStore(cfg.logs_dir)

        if list_days:
            days = [d.isoformat() for d in store.list_days()]
            if _get_json_mode(ctx):
                _json_emit(HistoryOutput(exit_code=EXIT_OK, date=log_day.isoformat(), days=days))
                raise click.exceptions.Exit(EXIT_OK)
            if not days:
                click.echo("No message logs found.")
            for d in days:
                click.echo(d)
            return

        messages = store.load(log_day)
        if agent:
            messages = [m for m in messages if agent in (m.sender, m.recipient)]

        summaries = [
            MessageSummary(
                id=m.id,
                sender=m.sender,
                recipient=m.recipient,
                type=m.type.value,
                timestamp=m.timestamp.isoformat() if m.timestamp else None,
            )
            for m in messages
        ]

        if _get_json_mode(ctx):
            _json_emit(
                HistoryOutput(
                    exit_code=EXIT_OK,
                    date=log_day.isoformat(),
                    messages=summaries,
                    total=len(summaries),
                )
            )
            raise click.exceptions.Exit(EXIT_OK)

        if not summaries:
            click.echo(f"No messages logged on {log_day.isoformat()}.")
            return

        for m in summaries:
            click.echo(f"{m.timestamp or '-'}  {m.type:<10} {m.sender} -> {m.recipient}")

    except click.exceptions.Exit:
        raise
    except Exception as e:
        _fail(ctx, e, HistoryOutput(exit_code=EXIT_ERROR, date=log_day.isoformat(), error=str(e)))
