"""
Metadata reader (controller/metadata.py)

Tests reflect(), reflect_module() and the type helpers.
"""

import inspect
import textwrap
from dataclasses import dataclass
from datetime import datetime
from typing import Annotated, Any, ClassVar, List, Optional

import pytest

from pinion.controller.decorators import (
    ValidatorDecorator,
    ValidatorId,
    authorize,
    bind,
    route,
    validate,
)
from pinion.controller.metadata import (
    element_type,
    is_array_type,
    is_model,
    reflect,
    reflect_module,
    type_name,
    unwrap_type,
)
from pinion.faults import InvalidDecoratorFault


class TagModel:
    def __init__(self, id: int, name: str):
        self.id = id
        self.name = name


# ============================================================================
# Type helpers
# ============================================================================

class TestTypeHelpers:

    def test_unwrap_optional(self):
        assert unwrap_type(Optional[int]) == (int, ())

    def test_unwrap_pep604_optional(self):
        assert unwrap_type(int | None) == (int, ())

    def test_unwrap_annotated(self):
        record = bind.body("id")
        assert unwrap_type(Annotated[int, record]) == (int, (record,))

    def test_unwrap_optional_annotated(self):
        record = validate("positive")
        assert unwrap_type(Optional[Annotated[int, record]]) == (int, (record,))

    def test_real_union_kept(self):
        bare, _ = unwrap_type(int | str)
        assert bare == int | str

    def test_arrays(self):
        assert is_array_type(list)
        assert is_array_type(List[int])
        assert is_array_type(tuple[int, ...])
        assert not is_array_type(dict)
        assert element_type(list[int]) is int
        assert element_type(tuple[TagModel, ...]) is TagModel
        assert element_type(list) is None

    def test_is_model(self):
        assert is_model(TagModel)
        assert not is_model(int)
        assert not is_model(bool)
        assert not is_model(datetime)
        assert not is_model(dict)
        assert not is_model(list[TagModel])
        assert not is_model(None)
        assert not is_model(Any)

    def test_type_name(self):
        assert type_name(int) == "int"
        assert type_name(list[TagModel]) == "[TagModel]"
        assert type_name(list) == "Array"
        assert type_name(None) == "Any"


# ============================================================================
# reflect()
# ============================================================================

class TestReflect:

    def test_methods_in_declaration_order(self):
        class AnimalController:
            def zebra(self):
                pass

            def alpha(self):
                pass

            def _private(self):
                pass

        names = [m.name for m in reflect(AnimalController).methods]
        assert names == ["zebra", "alpha"]

    def test_inherited_methods_base_first(self):
        class BaseController:
            def list(self):
                pass

            def get(self):
                pass

        class AnimalController(BaseController):
            def get(self, id: int):
                pass

            def save(self):
                pass

        descriptor = reflect(AnimalController)
        assert [m.name for m in descriptor.methods] == ["list", "get", "save"]
        assert [p.name for p in descriptor.method("get").parameters] == ["id"]

    def test_static_members_skipped(self):
        class AnimalController:
            prefix = "/x"

            @staticmethod
            def helper():
                pass

            def get(self):
                pass

        assert [m.name for m in reflect(AnimalController).methods] == ["get"]

    def test_parameters(self):
        class AnimalController:
            def get(self, id: int, name: Optional[str] = None, raw=None, *, flag: bool = False):
                pass

        params = reflect(AnimalController).method("get").parameters
        assert [p.name for p in params] == ["id", "name", "raw", "flag"]
        assert [p.type for p in params] == [int, str, None, bool]
        assert not params[0].has_default
        assert params[1].has_default and params[1].default is None
        assert params[3].kind is inspect.Parameter.KEYWORD_ONLY

    def test_variadic_parameters_skipped(self):
        class AnimalController:
            def get(self, id: int, *args, **kwargs):
                pass

        assert [p.name for p in reflect(AnimalController).method("get").parameters] == ["id"]

    def test_annotated_metadata_and_implied_markers(self):
        body = bind.ctx()

        class AnimalController:
            def get(self, ctx: Annotated[dict, body], user: Annotated[str, authorize.role("admin")]):
                pass

        ctx_param, user_param = reflect(AnimalController).method("get").parameters
        assert ctx_param.type is dict
        assert ctx_param.decorators == (body, ValidatorDecorator(ValidatorId.SKIP))
        assert ValidatorDecorator(ValidatorId.OPTIONAL) in user_param.decorators

    def test_public_on_parameter_rejected(self):
        class AnimalController:
            def get(self, id: Annotated[int, authorize.public()]):
                pass

        with pytest.raises(InvalidDecoratorFault):
            reflect(AnimalController)

    def test_method_and_class_decorators(self):
        @route.root("/beast")
        class AnimalController:
            @route.get(":id")
            def get(self, id: int):
                pass

        descriptor = reflect(AnimalController)
        assert descriptor.name == "AnimalController"
        assert descriptor.type is AnimalController
        assert len(descriptor.decorators) == 1
        assert descriptor.method("get").decorators[0].url == ":id"

    def test_memoized(self):
        class AnimalController:
            pass

        assert reflect(AnimalController) is reflect(AnimalController)

    def test_coroutine_flag(self):
        class AnimalController:
            async def get(self):
                pass

        assert reflect(AnimalController).method("get").is_coroutine


class TestProperties:

    def test_constructor_parameters(self):
        props = reflect(TagModel).properties
        assert [(p.name, p.type) for p in props] == [("id", int), ("name", str)]

    def test_dataclass_fields(self):
        @dataclass
        class AnimalModel:
            id: int
            tags: List[TagModel]
            note: Annotated[str, validate("short")] = ""

        props = reflect(AnimalModel).properties
        assert [p.name for p in props] == ["id", "tags", "note"]
        assert props[1].type == List[TagModel]
        assert props[2].decorators == (ValidatorDecorator("short"),)
        assert props[2].default == ""

    def test_annotated_class_attributes(self):
        class AnimalModel:
            id: int
            name: str
            counter: ClassVar[int] = 0
            _hidden: int

        props = reflect(AnimalModel).properties
        assert [(p.name, p.type) for p in props] == [("id", int), ("name", str)]

    def test_untyped_constructor(self):
        class AnimalModel:
            def __init__(self, id, name):
                pass

        assert all(p.type is None for p in reflect(AnimalModel).properties)


# ============================================================================
# reflect_module()
# ============================================================================

class TestReflectModule:

    def test_classes_in_definition_order(self, tmp_path):
        source = tmp_path / "animal.py"
        source.write_text(
            "from pinion import route\n"
            "from pinion.request import Request\n"
            "\n"
            "class AnimalController:\n"
            "    def get(self, id: int):\n"
            "        return id\n"
            "\n"
            "class Helper:\n"
            "    pass\n"
        )
        classes = reflect_module(source)
        assert [c.__name__ for c in classes] == ["AnimalController", "Helper"]

    def test_imported_once(self, tmp_path):
        source = tmp_path / "once.py"
        source.write_text("class OnceController:\n    pass\n")
        assert reflect_module(source)[0] is reflect_module(str(source))[0]


class TestUnresolvedHints:

    def test_only_unresolved_hint_dropped(self, tmp_path):
        source = tmp_path / "partial.py"
        source.write_text(textwrap.dedent("""
            from __future__ import annotations

            from typing import TYPE_CHECKING

            if TYPE_CHECKING:
                from decimal import Context as Unresolved

            class ItemController:
                def get(self, id: int, flag: bool, other: Unresolved):
                    return id
        """))
        (controller,) = reflect_module(source)
        params = reflect(controller).method("get").parameters
        assert [(p.name, p.type) for p in params] == [("id", int), ("flag", bool), ("other", None)]

    def test_model_property_hints_kept(self, tmp_path):
        source = tmp_path / "partial_model.py"
        source.write_text(textwrap.dedent("""
            from __future__ import annotations

            from typing import TYPE_CHECKING

            if TYPE_CHECKING:
                from decimal import Context as Unresolved

            class NoteModel:
                title: str
                count: int
                context: Unresolved
        """))
        (model,) = reflect_module(source)
        props = reflect(model).properties
        assert [(p.name, p.type) for p in props] == [("title", str), ("count", int), ("context", None)]
