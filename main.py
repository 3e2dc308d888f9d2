import logging
import json
import math
from typing import Annotated, Dict, List

from fastapi import FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, StreamingResponse
from pydantic import AfterValidator, BaseModel, Field

from Engine.composer import compose
from Engine.differentiator import compute_derivative, derivative
from Engine.errors import EngineError
from Engine.evaluator import evaluate
from Engine.parser import build_from_postfix
from Engine.simplifier import simplify
from Engine.tree import Tree, substitute_bound_variables, wrap_in_function

from generate_expression import generate_random_expression
from settings import load_settings

# -------------------------------------------------------------------
# Setup
# -------------------------------------------------------------------
settings = load_settings()

logging.basicConfig(level=settings.log_level)
logger = logging.getLogger(__name__)

app = FastAPI()

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(EngineError)
async def engine_error_handler(request: Request, exc: EngineError):
    logger.info("Engine error on %s: %s", request.url.path, exc)
    return JSONResponse(status_code=400, content={"detail": exc.to_dict()})


def tree_payload(tree: Tree):
    return {
        "postfix": tree.to_postfix(),
        "infix": tree.to_infix(),
        "latex": tree.to_latex(),
    }

# -------------------------------------------------------------------
# Render Health Endpoints
# -------------------------------------------------------------------
@app.get("/ping")
async def ping():
    logger.info("Uptime ping received")
    return {"status": "ok", "message": "Backend is alive"}

@app.get("/uptime")
async def uptime():
    logger.info("UptimeRobot pinged this server.")
    return {"status": "alive"}

# -------------------------------------------------------------------
# Pydantic Models
# -------------------------------------------------------------------
def _check_length(value: str) -> str:
    if len(value) > settings.max_expression_length:
        raise ValueError("Expression is too long")
    return value


def _check_variable(value: str) -> str:
    if len(value) != 1 or not ('a' <= value <= 'z'):
        raise ValueError("Variable must be a single lowercase letter")
    return value


Expression = Annotated[str, AfterValidator(_check_length)]
VariableName = Annotated[str, AfterValidator(_check_variable)]


class ExpressionInput(BaseModel):
    expression: Expression


class EvaluateInput(ExpressionInput):
    bindings: Dict[str, float] = Field(default_factory=dict)


class DerivativeInput(ExpressionInput):
    variable: VariableName = 'x'
    simplify: bool = True


class ComposeInput(BaseModel):
    left: Expression
    right: Expression
    operator: str


class WrapInput(ExpressionInput):
    function: str
    path: str = ""


class GenerationInput(BaseModel):
    num_terms: int = Field(3, ge=1, le=10)
    max_depth: int = Field(2, ge=0, le=6)
    variables: List[VariableName] = Field(default_factory=lambda: ['x'], min_length=1)

# -------------------------------------------------------------------
# Streaming Benchmark Engine
# -------------------------------------------------------------------
async def benchmark_generator(expression: str, variable: str):

    total_runs = settings.benchmark_runs
    warmup_runs = settings.warmup_runs
    measured_runs = total_runs - warmup_runs

    times = []
    memories = []
    result = {}

    try:
        for run_index in range(total_runs):
            result_data = compute_derivative(expression, variable)

            if "error" in result_data:
                err = {
                    'type': 'error',
                    'detail': result_data["error"]
                }
                yield f"data: {json.dumps(err)}\n\n"
                return

            if run_index >= warmup_runs:
                times.append(result_data['execution_time_ms'])
                memories.append(result_data['peak_memory_bytes'])

                if run_index == warmup_runs:
                    result = {
                        'derivative': result_data["derivative_latex"],
                        'postfix': result_data["derivative_postfix"],
                        'infix': result_data["derivative_infix"],
                        'steps': result_data["steps"],
                    }

        result['avgTime'] = sum(times) / measured_runs
        result['avgMemory'] = sum(memories) / measured_runs

        final_msg = {
            'type': 'complete',
            'results': result
        }
        yield f"data: {json.dumps(final_msg)}\n\n"

    except Exception as e:
        logger.error("Unexpected benchmark error", exc_info=True)
        err = {
            'type': 'error',
            'detail': {'code': 'internal_error', 'message': f"Unexpected server error: {str(e)}", 'details': {}}
        }
        yield f"data: {json.dumps(err)}\n\n"

# -------------------------------------------------------------------
# API Endpoints
# -------------------------------------------------------------------
@app.get("/solve_stream")
async def solve_derivative_stream(expression: str, variable: str = 'x'):
    try:
        _check_length(expression)
        _check_variable(variable)
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))

    logger.debug(f"Solve request: {expression} d/d{variable}")
    return StreamingResponse(
        benchmark_generator(expression, variable),
        media_type="text/event-stream",
        headers={
            "Cache-Control": "no-cache",
            "Connection": "keep-alive",
        }
    )

@app.post("/parse")
async def parse_expression(input_data: ExpressionInput):
    tree = build_from_postfix(input_data.expression)
    return {**tree_payload(tree), "variables": sorted(tree.collect_variables())}

@app.post("/evaluate")
async def evaluate_expression(input_data: EvaluateInput):
    tree = build_from_postfix(input_data.expression)
    value = evaluate(tree, input_data.bindings)
    # JSON has no inf/nan
    return {"value": value if math.isfinite(value) else str(value)}

@app.post("/derivative")
async def derivative_expression(input_data: DerivativeInput):
    tree = build_from_postfix(input_data.expression)
    result = derivative(tree, input_data.variable)
    if input_data.simplify:
        result = simplify(result)
    return tree_payload(result)

@app.post("/simplify")
async def simplify_expression(input_data: ExpressionInput):
    return tree_payload(simplify(build_from_postfix(input_data.expression)))

@app.post("/compose")
async def compose_expressions(input_data: ComposeInput):
    left = build_from_postfix(input_data.left)
    right = build_from_postfix(input_data.right)
    return tree_payload(compose(left, right, input_data.operator))

@app.post("/substitute")
async def substitute_expression(input_data: EvaluateInput):
    tree = build_from_postfix(input_data.expression)
    return tree_payload(substitute_bound_variables(tree, input_data.bindings))

@app.post("/wrap")
async def wrap_expression(input_data: WrapInput):
    tree = build_from_postfix(input_data.expression)
    try:
        wrapped = wrap_in_function(tree, input_data.function, input_data.path)
    except EngineError:
        raise
    except (LookupError, ValueError) as e:
        raise HTTPException(
            status_code=400,
            detail={"code": "invalid_wrap", "message": str(e), "details": {}},
        )
    return tree_payload(wrapped)

@app.post("/generate")
async def generate_expression_endpoint(input_data: GenerationInput):
    tree, expr_str, expr_latex = generate_random_expression(
        variables=input_data.variables,
        num_terms=input_data.num_terms,
        max_depth=input_data.max_depth
    )

    return {
        "expression_string": expr_str,
        "expression_infix": tree.infix,
        "expression_latex": expr_latex
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host=settings.host, port=settings.port, log_level=settings.log_level.lower())
