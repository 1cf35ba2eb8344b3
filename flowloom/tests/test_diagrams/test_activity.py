"""Unit tests for activity (flow) diagram generation.

Tests cover:
- Flow Logic path: decisions with and without exceptions, loops
- Execution-step path: keyword classification, loop body consumption
- Method-name skeletons
- Block balance on every path and determinism
"""

import pytest

from flowloom.core.diagrams.activity import (
    ALTERNATIVE_PATH_ACTION,
    generate_activity_diagram,
    is_decision_step,
    is_loop_step,
)
from flowloom.core.diagrams.extractor import extract_flow_model
from flowloom.core.diagrams.models import FlowElementKind, FlowLogicElement, FlowModel
from flowloom.core.diagrams.notation import condition


# =========================================================================
# Helpers
# =========================================================================

def _lines(puml: str):
    return [line.strip() for line in puml.splitlines()]


def _assert_balanced(puml: str):
    """Every if/repeat is closed, and nothing is open at the final stop."""
    lines = _lines(puml)
    final_stop = len(lines) - 1 - lines[::-1].index("stop")
    depth = 0
    for i, line in enumerate(lines):
        if line.startswith("if (") or line == "repeat":
            depth += 1
        elif line == "endif" or line.startswith("repeat while ("):
            depth -= 1
        assert depth >= 0, f"block closed before it was opened at line {i}"
        if i == final_stop:
            assert depth == 0, "blocks still open at the final stop"
    assert depth == 0


def _body(puml: str):
    """Lines between ``start`` and the final ``stop``."""
    lines = _lines(puml)
    final_stop = len(lines) - 1 - lines[::-1].index("stop")
    return lines[lines.index("start") + 1:final_stop]


# =========================================================================
# Tests: Envelope
# =========================================================================

class TestEnvelope:
    def test_start_and_end_markers(self):
        puml = generate_activity_diagram("OrderService", "placeOrder", FlowModel())
        lines = _lines(puml)
        assert lines[0] == "@startuml"
        assert lines[-1] == "@enduml"
        assert "title Flow Diagram - OrderService.placeOrder" in lines
        assert lines.count("start") == 1

    def test_title_without_method(self):
        puml = generate_activity_diagram("OrderService", None, FlowModel())
        assert "title Flow Diagram - OrderService" in _lines(puml)

    def test_deterministic(self):
        model = extract_flow_model("**Execution Steps:**\n1. Check stock\n2. Ship it\n")
        first = generate_activity_diagram("A", "b", model)
        second = generate_activity_diagram("A", "b", model)
        assert first == second


# =========================================================================
# Tests: Flow Logic path
# =========================================================================

class TestFlowLogicPath:
    def test_decision_with_exception(self):
        text = (
            "**Flow Logic:**\n"
            "- START: Receive order id\n"
            "- DECISION: Order exists? throw NotFoundException\n"
            "- PROCESS: Load order\n"
            "- END: Return order\n"
        )
        puml = generate_activity_diagram("OrderService", "getOrder", extract_flow_model(text))
        assert _body(puml) == [
            ":Receive order id;",
            "if (Order exists?) then (yes)",
            "else (no)",
            ":Throw NotFoundException;",
            "stop",
            "endif",
            ":Load order;",
            ":Return order;",
        ]
        _assert_balanced(puml)

    def test_decision_without_exception_is_closed(self):
        model = FlowModel(flow_elements=(
            FlowLogicElement(FlowElementKind.DECISION, "Stock available?"),
        ))
        puml = generate_activity_diagram("InventoryService", "reserve", model)
        assert _body(puml) == [
            "if (Stock available?) then (yes)",
            "else (no)",
            f":{ALTERNATIVE_PATH_ACTION};",
            "endif",
        ]
        _assert_balanced(puml)

    def test_loop_consumes_following_process(self):
        model = FlowModel(flow_elements=(
            FlowLogicElement(FlowElementKind.LOOP, "For each line item"),
            FlowLogicElement(FlowElementKind.PROCESS, "Reserve stock"),
            FlowLogicElement(FlowElementKind.PROCESS, "Send receipt"),
        ))
        body = _body(generate_activity_diagram("OrderService", "placeOrder", model))
        assert body == [
            "repeat",
            ":For each line item;",
            ":Reserve stock;",
            "repeat while (More items?)",
            ":Send receipt;",
        ]

    def test_loop_at_end_is_closed(self):
        model = FlowModel(flow_elements=(
            FlowLogicElement(FlowElementKind.START, "Begin"),
            FlowLogicElement(FlowElementKind.LOOP, "Retry the call"),
        ))
        puml = generate_activity_diagram("Client", "call", model)
        assert _body(puml)[-1] == "repeat while (More items?)"
        _assert_balanced(puml)

    def test_flow_logic_wins_over_steps(self):
        model = FlowModel(
            flow_elements=(FlowLogicElement(FlowElementKind.PROCESS, "From flow logic"),),
            execution_steps=("From steps",),
        )
        body = _body(generate_activity_diagram("A", "b", model))
        assert body == [":From flow logic;"]


# =========================================================================
# Tests: Execution-step path
# =========================================================================

class TestExecutionStepPath:
    def test_loop_step_consumes_next_step(self):
        text = (
            "**Execution Steps:**\n"
            "1. Receive order request\n"
            "2. loop through items\n"
            "3. update inventory\n"
            "4. Return confirmation\n"
        )
        puml = generate_activity_diagram("OrderService", "placeOrder", extract_flow_model(text))
        assert _body(puml) == [
            ":Receive order request;",
            "repeat",
            ":loop through items;",
            ":update inventory;",
            "repeat while (More items?)",
            ":Return confirmation;",
        ]
        assert _lines(puml).count("repeat") == 1
        _assert_balanced(puml)

    def test_decision_step_with_throw(self):
        model = FlowModel(execution_steps=(
            "Validate payment details, throw PaymentException",
            "Charge card",
        ))
        puml = generate_activity_diagram("PaymentService", "pay", model)
        assert _body(puml) == [
            "if (Validate payment details?) then (yes)",
            "else (no)",
            ":Throw PaymentException;",
            "stop",
            "endif",
            ":Charge card;",
        ]
        _assert_balanced(puml)

    def test_decision_step_without_throw(self):
        model = FlowModel(execution_steps=("Check user exists",))
        puml = generate_activity_diagram("UserService", "load", model)
        assert f":{ALTERNATIVE_PATH_ACTION};" in _body(puml)
        _assert_balanced(puml)

    def test_trailing_loop_step(self):
        model = FlowModel(execution_steps=("Prepare batch", "Iterate over records"))
        puml = generate_activity_diagram("BatchJob", "run", model)
        assert _body(puml)[-2:] == [":Iterate over records;", "repeat while (More items?)"]
        _assert_balanced(puml)

    @pytest.mark.parametrize("step", [
        "Check the balance",
        "Validation of the input",
        "Verify signature",
        "Order exists in store",
        "If the cache is warm",
        "Condition on flag",
    ])
    def test_decision_keywords(self, step):
        assert is_decision_step(step)

    @pytest.mark.parametrize("step", [
        "Loop over lines",
        "Iterating the list",
        "Repeat until done",
        "For each customer",
        "While queue not empty",
    ])
    def test_loop_keywords(self, step):
        assert is_loop_step(step)

    @pytest.mark.parametrize("step", [
        "Send confirmation",
        "Specific handling",
        "Format the response",
    ])
    def test_plain_steps(self, step):
        assert not is_decision_step(step)
        assert not is_loop_step(step)


# =========================================================================
# Tests: Method-name skeletons
# =========================================================================

class TestMethodNameSkeletons:
    def test_create_skeleton(self):
        puml = generate_activity_diagram("UserService", "createUser", FlowModel())
        assert _body(puml) == [
            ":Receive creation parameters;",
            ":Validate input data;",
            "if (Data valid?) then (yes)",
            ":Create new entity;",
            ":Save to database;",
            ":Return created entity;",
            "else (no)",
            ":Return validation error;",
            "endif",
        ]
        _assert_balanced(puml)

    @pytest.mark.parametrize("method, first_line", [
        ("processOrder", ":Receive input parameters;"),
        ("handleEvent", ":Receive input parameters;"),
        ("addItem", ":Receive creation parameters;"),
        ("updateProfile", ":Receive update parameters;"),
        ("modifyRole", ":Receive update parameters;"),
        ("deleteAccount", ":Receive entity identifier;"),
        ("removeTag", ":Receive entity identifier;"),
        ("getUser", ":Receive search parameters;"),
        ("findByEmail", ":Receive search parameters;"),
        ("retrieveAll", ":Receive search parameters;"),
        ("recalculate", ":Initialize method;"),
    ])
    def test_prefix_selection(self, method, first_line):
        puml = generate_activity_diagram("Svc", method, FlowModel())
        assert _body(puml)[0] == first_line
        _assert_balanced(puml)

    def test_prefix_is_case_insensitive(self):
        puml = generate_activity_diagram("Svc", "CreateOrder", FlowModel())
        assert _body(puml)[0] == ":Receive creation parameters;"

    def test_delete_skeleton_nests_decisions(self):
        puml = generate_activity_diagram("Svc", "deleteUser", FlowModel())
        assert _lines(puml).count("endif") == 2
        _assert_balanced(puml)

    def test_class_level_skeleton(self):
        puml = generate_activity_diagram("ReportBuilder", None, FlowModel())
        assert _body(puml) == [
            ":Initialize ReportBuilder;",
            ":Execute main functionality;",
            ":Process business logic;",
            ":Return results;",
        ]


# =========================================================================
# Tests: Condition labels
# =========================================================================

class TestConditionLabel:
    def test_single_question_mark(self):
        assert condition("Is valid??") == "Is valid?"

    def test_parentheses_removed(self):
        assert condition("Check (amount > 0)") == "Check amount > 0?"

    def test_empty_falls_back(self):
        assert condition("throw FooException") == "Condition?"
