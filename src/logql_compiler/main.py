"""FastAPI application compiling filter state into LogQL."""

from contextlib import asynccontextmanager

from fastapi import FastAPI, Request

from logql_compiler.config import settings
from logql_compiler.loki import LokiClient
from logql_compiler.models.requests import (
    CompileRequest,
    DetectedFieldValuesRequest,
    FavoriteValuesRequest,
    LabelValuesRequest,
)
from logql_compiler.models.responses import (
    CompileResponse,
    FavoriteValuesResponse,
    HealthResponse,
    QueryFragments,
    TagValuesResponse,
)
from logql_compiler.models.filters import ValueSuggestion
from logql_compiler.observability import get_tracer, setup_telemetry
from logql_compiler.observability.logging import get_logger, setup_logging
from logql_compiler.query import (
    build_data_query,
    build_expression,
    render_field_filters,
    render_label_filters,
    render_levels_filter,
    render_line_filters,
    render_metadata_filters,
    render_pattern_filters,
)
from logql_compiler.tag_values import (
    InMemoryFavoriteValuesStore,
    filter_detected_field_values,
    filter_label_values,
    filter_tag_value_filters,
    join_tag_filters,
)

# Initialize structured logging with trace context
setup_logging(level=settings.log_level)
logger = get_logger(__name__)

tracer = get_tracer(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    # startup phase
    app.state.loki = LokiClient(settings.loki_url, timeout=settings.loki_timeout)
    app.state.favorites = InMemoryFavoriteValuesStore()
    if not await app.state.loki.ready():
        logger.warning(
            "Loki not reachable at startup, value lookups will return no values",
            extra={"extra_fields": {"loki_url": settings.loki_url}},
        )

    # hand control back to FastAPI
    yield

    await app.state.loki.aclose()


app = FastAPI(
    title="LogQL Compiler Service",
    description="Compiles filter state into LogQL and serves autocomplete values",
    version=settings.service_version,
    lifespan=lifespan,
)

setup_telemetry(
    app,
    service_name=settings.service_name,
    service_version=settings.service_version,
    endpoint=settings.otel_endpoint,
    environment=settings.deployment_environment,
    enabled=settings.otel_enabled,
)


@app.get("/")
async def root():
    """Health check endpoint."""
    return {"status": "healthy", "service": settings.service_name}


@app.get("/health", response_model=HealthResponse)
async def health(request: Request):
    """Detailed health check including Loki reachability."""
    loki_ready = await request.app.state.loki.ready()
    return HealthResponse(
        status="healthy" if loki_ready else "degraded",
        service=settings.service_name,
        version=settings.service_version,
        dependencies={"loki": "ok" if loki_ready else "unreachable"},
    )


@app.post("/v1/query/compile", response_model=CompileResponse)
async def compile_query(request: CompileRequest):
    with tracer.start_as_current_span("compile_query") as span:
        fragments = QueryFragments(
            labels=render_label_filters(request.labels),
            metadata=render_metadata_filters(request.metadata),
            levels=render_levels_filter(request.levels),
            fields=render_field_filters(request.fields),
            line_filters=render_line_filters(request.line_filters),
            patterns=render_pattern_filters(request.patterns),
        )
        expr = build_expression(
            labels=request.labels,
            metadata=request.metadata,
            fields=request.fields,
            line_filters=request.line_filters,
            patterns=request.patterns,
            levels=request.levels,
        )
        span.set_attribute("logql.query", expr)

        logger.info("Compiled query", extra={"extra_fields": {"expr": expr}})

        return CompileResponse(
            expr=expr,
            fragments=fragments,
            query=build_data_query(
                expr, **request.query_overrides.model_dump(exclude_none=True)
            ),
        )


@app.post("/v1/tag-values/labels", response_model=TagValuesResponse)
async def label_values(request: LabelValuesRequest, http_request: Request):
    """Suggest values for a stream label, minus the ones already selected."""
    with tracer.start_as_current_span("label_values") as span:
        span.set_attribute("loki.label", request.filter.key)

        # other values for the edited key stay selectable
        upstream_filters = filter_tag_value_filters(
            join_tag_filters(request.filters), request.filter
        )

        time_range = request.time_range
        results = await http_request.app.state.loki.fetch_label_values(
            request.filter.key,
            upstream_filters,
            start=time_range.start if time_range else None,
            end=time_range.end if time_range else None,
        )

        favorites = http_request.app.state.favorites.get(
            request.datasource_uid, request.filter.key
        )
        values = filter_label_values(
            results, request.filters, request.filter.key, favorites
        )
        return TagValuesResponse(values=[ValueSuggestion(text=v) for v in values])


@app.post("/v1/tag-values/detected-fields", response_model=TagValuesResponse)
async def detected_field_values(request: DetectedFieldValuesRequest, http_request: Request):
    """Suggest values for a detected field, wrapped in field envelopes."""
    with tracer.start_as_current_span("detected_field_values") as span:
        span.set_attribute("loki.field", request.filter.key)

        time_range = request.time_range
        results = await http_request.app.state.loki.fetch_detected_field_values(
            request.filter.key,
            request.expr,
            limit=request.limit,
            start=time_range.start if time_range else None,
            end=time_range.end if time_range else None,
        )
        suggestions = filter_detected_field_values(
            results, request.filters, request.filter, request.variable_type
        )
        return TagValuesResponse(values=suggestions)


@app.put(
    "/v1/favorites/{datasource_uid}/{key}", response_model=FavoriteValuesResponse
)
async def add_favorite_values(
    datasource_uid: str, key: str, request: FavoriteValuesRequest, http_request: Request
):
    values = http_request.app.state.favorites.add(datasource_uid, key, request.values)
    return FavoriteValuesResponse(
        datasource_uid=datasource_uid, key=key, values=sorted(values)
    )


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=8000)
