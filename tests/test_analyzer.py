"""
Static route analyzer (controller/analyzer.py)

Tests the individual checks, analyze_routes() and print_analysis().
"""

from dataclasses import dataclass
from typing import Annotated, List

from pinion.controller.analyzer import (
    IssueType,
    analyze_routes,
    array_type_info_test,
    backing_parameter_test,
    duplicate_route_test,
    format_analysis,
    metadata_type_test,
    model_type_info_test,
    print_analysis,
)
from pinion.controller.compiler import build_route_table
from pinion.controller.decorators import bind, route


def only(results_or_issues):
    return [(i.type, i.message) for i in results_or_issues]


class UntypedModel:
    def __init__(self, id, name):
        self.id = id
        self.name = name


@dataclass
class TagModel:
    id: int
    labels: list


@dataclass
class AnimalModel:
    id: int
    tags: List[TagModel]
    extra: UntypedModel


# ============================================================================
# Checks
# ============================================================================

class TestBackingParameter:

    def test_success(self):
        class AnimalController:
            @route.get(":ID/:name")
            def get(self, id: int, name: str):
                pass

        (info,) = build_route_table([AnimalController])
        assert only(backing_parameter_test(info, [info])) == [(IssueType.SUCCESS, "")]

    def test_missing(self):
        class AnimalController:
            @route.get(":id/:type")
            def get(self, name: str):
                pass

        (info,) = build_route_table([AnimalController])
        (issue,) = backing_parameter_test(info, [info])
        assert issue.type is IssueType.ERROR
        assert issue.message == "Route parameters (id, type) don't have a matching action parameter"


class TestMetadataType:

    def test_untyped_action(self):
        class AnimalController:
            def get(self, id, name):
                pass

        (info,) = build_route_table([AnimalController])
        (issue,) = metadata_type_test(info, [info])
        assert issue.type is IssueType.WARNING

    def test_no_parameters_is_fine(self):
        class AnimalController:
            def get(self):
                pass

        (info,) = build_route_table([AnimalController])
        assert metadata_type_test(info, [info])[0].type is IssueType.SUCCESS

    def test_partially_typed_is_fine(self):
        class AnimalController:
            def get(self, id: int, name):
                pass

        (info,) = build_route_table([AnimalController])
        assert metadata_type_test(info, [info])[0].type is IssueType.SUCCESS


class TestDuplicateRoute:

    def test_duplicates_named(self):
        class AnimalController:
            @route.get("/same")
            def a(self, id: int):
                pass

            @route.get("/same")
            def b(self):
                pass

            @route.post("/same")
            def c(self):
                pass

        routes = build_route_table([AnimalController])
        first, second, third = [duplicate_route_test(r, routes)[0] for r in routes]
        assert first.type is IssueType.ERROR
        assert first.message == "Duplicate route found in AnimalController.a(id), AnimalController.b()"
        assert second.message == first.message
        assert third.type is IssueType.SUCCESS


class TestModelTypeInfo:

    def test_untyped_model_reported_once(self):
        class AnimalController:
            @route.post()
            def save(self, data: AnimalModel, other: UntypedModel):
                pass

        (info,) = build_route_table([AnimalController])
        issues = model_type_info_test(info, [info])
        assert only(issues) == [
            (IssueType.WARNING, "Parameter binding skipped because UntypedModel has no typed field"),
        ]

    def test_warnings_in_declaration_order(self):
        class ZooModel:
            def __init__(self, keeper):
                self.keeper = keeper

        class AnimalController:
            @route.post()
            def save(self, zoo: ZooModel, other: UntypedModel):
                pass

        (info,) = build_route_table([AnimalController])
        assert [message for _, message in only(model_type_info_test(info, [info]))] == [
            "Parameter binding skipped because ZooModel has no typed field",
            "Parameter binding skipped because UntypedModel has no typed field",
        ]

    def test_typed_models_pass(self):
        class AnimalController:
            @route.post()
            def save(self, data: TagModel):
                pass

        (info,) = build_route_table([AnimalController])
        assert model_type_info_test(info, [info])[0].type is IssueType.SUCCESS

    def test_context_bindings_skipped(self):
        class AnimalController:
            def get(self, raw: Annotated[UntypedModel, bind.ctx()]):
                pass

        (info,) = build_route_table([AnimalController])
        assert model_type_info_test(info, [info])[0].type is IssueType.SUCCESS


class TestArrayTypeInfo:

    def test_untyped_arrays(self):
        class AnimalController:
            @route.post()
            def save(self, data: AnimalModel, ids: list, names: List[str]):
                pass

        (info,) = build_route_table([AnimalController])
        assert only(array_type_info_test(info, [info])) == [
            (IssueType.WARNING, "Parameter binding skipped because array field without element type found in (data.tags.labels)"),
            (IssueType.WARNING, "Parameter binding skipped because array field without element type found in (ids)"),
        ]


# ============================================================================
# analyze_routes / print_analysis
# ============================================================================

class TestAnalyzeRoutes:

    def test_success_issues_dropped(self):
        class AnimalController:
            @route.get(":id")
            def get(self, id: int):
                pass

        (result,) = analyze_routes(build_route_table([AnimalController]))
        assert result.issues == []
        assert not result.has_error

    def test_order_is_route_then_check(self):
        class AnimalController:
            @route.get("/same/:id")
            def a(self, x):
                pass

            @route.get("/same/:id")
            def b(self, id: int):
                pass

        first, second = analyze_routes(build_route_table([AnimalController]))
        assert [i.type for i in first.issues] == [IssueType.ERROR, IssueType.WARNING, IssueType.ERROR]
        assert [i.type for i in second.issues] == [IssueType.ERROR]


class TestPrintAnalysis:

    def test_format(self):
        class AnimalController:
            @route.get(":id")
            def get(self, id: int):
                pass

            @route.post("/beast/:type")
            def save(self, name: str):
                pass

        lines = format_analysis(analyze_routes(build_route_table([AnimalController])))
        assert lines == [
            ("1. AnimalController.get(id)    -> GET  /animal/:id", None),
            ("2. AnimalController.save(name) -> POST /beast/:type", "red"),
            (" - error Route parameters (type) don't have a matching action parameter", "red"),
        ]

    def test_warning_colour(self):
        class AnimalController:
            def get(self, id):
                pass

        lines = format_analysis(analyze_routes(build_route_table([AnimalController])))
        assert lines[0][1] == "yellow"
        assert lines[1][0].startswith(" - warning ")

    def test_print(self, capsys):
        class AnimalController:
            def get(self, id: int):
                pass

        print_analysis(analyze_routes(build_route_table([AnimalController])))
        out = capsys.readouterr().out
        assert "1. AnimalController.get(id) -> GET /animal/get" in out

    def test_empty(self):
        assert format_analysis([]) == []
