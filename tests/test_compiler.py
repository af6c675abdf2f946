"""
Route table builder (controller/compiler.py)

Tests url generation rules, controller discovery and emission order.
"""

import textwrap

import pytest

from pinion.controller.compiler import (
    build_route_table,
    strip_controller,
    transform_controller,
    transform_module,
)
from pinion.controller.decorators import route
from pinion.controller.metadata import reflect
from pinion.faults import ControllerPathNotFoundFault


def urls(routes):
    return [(r.method, r.url) for r in routes]


# ============================================================================
# transform_controller
# ============================================================================

class TestTransformController:

    def test_strip_controller(self):
        assert strip_controller("AnimalController") == "animal"
        assert strip_controller("BeastController") == "beast"

    def test_implicit_get_route(self):
        class AnimalController:
            def getAnimal(self, id: int):
                pass

        assert urls(transform_controller(AnimalController)) == [("GET", "/animal/getanimal")]

    def test_implicit_url_from_method_name(self):
        class AnimalController:
            @route.post()
            def Save(self):
                pass

        assert urls(transform_controller(AnimalController)) == [("POST", "/animal/save")]

    def test_relative_url(self):
        class AnimalController:
            @route.get(":id")
            def get(self, id: int):
                pass

        assert urls(transform_controller(AnimalController)) == [("GET", "/animal/:id")]

    def test_absolute_url(self):
        class AnimalController:
            @route.get("/beast/:id")
            def get(self, id: int):
                pass

        assert urls(transform_controller(AnimalController)) == [("GET", "/beast/:id")]

    def test_empty_url_is_controller_prefix(self):
        class AnimalController:
            @route.get("")
            def list(self):
                pass

        assert urls(transform_controller(AnimalController)) == [("GET", "/animal")]

    def test_root_override(self):
        @route.root("/beast/:type/bunny")
        class AnimalController:
            @route.get(":id")
            def get(self, type: str, id: int):
                pass

            def list(self, type: str):
                pass

        assert urls(transform_controller(AnimalController)) == [
            ("GET", "/beast/:type/bunny/:id"),
            ("GET", "/beast/:type/bunny/list"),
        ]

    def test_ignore(self):
        class AnimalController:
            @route.ignore()
            def helper(self):
                pass

            @route.ignore()
            @route.get()
            def hidden(self):
                pass

            def visible(self):
                pass

        assert urls(transform_controller(AnimalController)) == [("GET", "/animal/visible")]

    def test_multiple_route_decorators_bottom_most_first(self):
        class AnimalController:
            @route.get("first")
            @route.post("/second")
            @route.put("")
            def method(self):
                pass

        assert urls(transform_controller(AnimalController)) == [
            ("PUT", "/animal"),
            ("POST", "/second"),
            ("GET", "/animal/first"),
        ]

    def test_methods_in_declaration_order(self):
        class AnimalController:
            def b(self):
                pass

            def a(self):
                pass

        assert urls(transform_controller(AnimalController)) == [
            ("GET", "/animal/b"),
            ("GET", "/animal/a"),
        ]

    def test_non_controller_ignored(self):
        class AnimalService:
            def get(self):
                pass

        assert transform_controller(AnimalService) == []

    def test_suffix_case_insensitive(self):
        class Animalcontroller:
            def get(self):
                pass

        assert urls(transform_controller(Animalcontroller)) == [("GET", "/animal/get")]

    def test_accepts_descriptor(self):
        class AnimalController:
            def get(self):
                pass

        (info,) = transform_controller(reflect(AnimalController))
        assert info.controller.type is AnimalController
        assert info.action.name == "get"
        assert info.key == ("GET", "/animal/get")
        assert info.action_name == "AnimalController.get()"

    def test_directory_root_prefix(self):
        class AnimalController:
            @route.get("/absolute")
            def a(self):
                pass

            @route.get("")
            def b(self):
                pass

            def c(self):
                pass

        assert urls(transform_controller(AnimalController, "/api")) == [
            ("GET", "/api/absolute"),
            ("GET", "/api/animal"),
            ("GET", "/api/animal/c"),
        ]


# ============================================================================
# Discovery
# ============================================================================

def write(path, source):
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(textwrap.dedent(source))


class TestTransformModule:

    def test_single_file(self, tmp_path):
        write(tmp_path / "animal_controller.py", """
            class AnimalController:
                def get(self, id: int):
                    return id

            class NotAController:
                def get(self):
                    pass
        """)
        assert urls(transform_module(tmp_path / "animal_controller.py")) == [("GET", "/animal/get")]

    def test_directory(self, tmp_path):
        write(tmp_path / "b_controller.py", """
            class BeastController:
                def list(self):
                    pass
        """)
        write(tmp_path / "a_controller.py", """
            class AnimalController:
                def list(self):
                    pass
        """)
        write(tmp_path / "_private.py", """
            class HiddenController:
                def list(self):
                    pass
        """)
        write(tmp_path / "notes.txt", "not python")
        write(tmp_path / "api" / "v1" / "user_controller.py", """
            from pinion import route

            class UserController:
                def list(self):
                    pass

                @route.get("/me")
                def me(self):
                    pass
        """)

        assert urls(transform_module(tmp_path)) == [
            ("GET", "/animal/list"),
            ("GET", "/beast/list"),
            ("GET", "/api/v1/user/list"),
            ("GET", "/api/v1/me"),
        ]

    def test_missing_path(self, tmp_path):
        with pytest.raises(ControllerPathNotFoundFault) as exc:
            transform_module(tmp_path / "nope")
        assert exc.value.code == "CONTROLLER_PATH_NOT_FOUND"


class TestBuildRouteTable:

    def test_from_classes(self):
        class AnimalController:
            def get(self):
                pass

        class BeastController:
            def get(self):
                pass

        table = build_route_table([AnimalController, BeastController])
        assert isinstance(table, tuple)
        assert urls(table) == [("GET", "/animal/get"), ("GET", "/beast/get")]

    def test_from_single_class(self):
        class AnimalController:
            def get(self):
                pass

        assert urls(build_route_table(AnimalController)) == [("GET", "/animal/get")]

    def test_relative_path_resolved_against_root(self, tmp_path):
        write(tmp_path / "controller" / "animal.py", """
            class AnimalController:
                def get(self):
                    pass
        """)
        table = build_route_table("./controller", str(tmp_path))
        assert urls(table) == [("GET", "/animal/get")]

    def test_missing_relative_path(self, tmp_path):
        with pytest.raises(ControllerPathNotFoundFault):
            build_route_table("./controller", str(tmp_path))

    def test_duplicates_are_kept(self):
        class AnimalController:
            @route.get("/same")
            def a(self):
                pass

            @route.get("/same")
            def b(self):
                pass

        assert len(build_route_table([AnimalController])) == 2
