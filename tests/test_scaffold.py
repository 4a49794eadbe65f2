"""Tests for scaffolding generators and case helpers."""

from pathlib import Path

import pytest

from tsgen_cli.parser import parse_source, parse_tree
from tsgen_cli.scaffold import (
    GeneratedFile,
    GeneratorConfig,
    list_generators,
    parse_typed_names,
    run_generator,
    write_files,
)
from tsgen_cli.strings import camel_case, constant_case, indent, kebab_case, pascal_case, pluralize, snake_case


class TestStrings:
    """Tests for the case helpers."""

    @pytest.mark.parametrize("text", ["user-profile", "user_profile", "user profile", "UserProfile"])
    def test_pascal_case(self, text: str):
        assert pascal_case(text) == "UserProfile"

    def test_other_cases(self):
        assert camel_case("user-profile") == "userProfile"
        assert kebab_case("UserProfile") == "user-profile"
        assert snake_case("UserProfile") == "user_profile"
        assert constant_case("userProfile") == "USER_PROFILE"

    @pytest.mark.parametrize("word, plural", [
        ("user", "users"),
        ("box", "boxes"),
        ("match", "matches"),
        ("category", "categories"),
        ("day", "days"),
    ])
    def test_pluralize(self, word: str, plural: str):
        assert pluralize(word) == plural

    def test_indent_skips_blank_lines(self):
        assert indent("a\n\nb", 4) == "    a\n\n    b"


class TestTypedNames:
    """Tests for parse_typed_names."""

    def test_parses_optional_marker(self):
        assert parse_typed_names("name:string, nick?:string") == [
            {"name": "name", "type": "string", "optional": False},
            {"name": "nick", "type": "string", "optional": True},
        ]

    def test_dict_entries_pass_through(self):
        assert parse_typed_names([{"name": "age", "type": "number"}]) == [
            {"name": "age", "type": "number", "optional": False},
        ]

    def test_missing_type_raises(self):
        with pytest.raises(ValueError):
            parse_typed_names("name")


class TestModelGenerator:
    """Tests for the model generator."""

    def test_schema_and_factory(self):
        config = GeneratorConfig("Product", "src/models", {"fields": "name:string,price:number,note?:string"})
        result = run_generator("model", config)

        assert result.success
        assert len(result.files) == 1
        generated = result.files[0]
        assert Path(generated.path) == Path("src/models/product.ts")
        assert generated.content.startswith("/**\n * Product data model\n */\n\nimport { z } from 'zod';\n\n")
        assert (
            "export const productSchema = z.object({\n"
            "  id: z.string().uuid(),\n"
            "  name: z.string(),\n"
            "  price: z.number(),\n"
            "  note: z.string().optional(),\n"
            "  createdAt: z.date(),\n"
            "  updatedAt: z.date(),\n"
            "});\n"
        ) in generated.content
        assert "export type Product = z.infer<typeof productSchema>;" in generated.content

    def test_output_is_valid_typescript(self):
        result = run_generator("model", GeneratorConfig("order-item"))
        content = result.files[0].content

        assert not parse_tree(content).root_node.has_error
        factory = parse_source(content).tree.find("function", "createOrderItem")
        assert factory is not None
        assert factory.doc == "Create a OrderItem with a fresh id."

    def test_without_timestamps(self):
        result = run_generator("model", GeneratorConfig("Tag", options={"has_timestamps": False}))
        content = result.files[0].content

        assert "createdAt" not in content
        assert "const now" not in content
        assert not parse_tree(content).root_node.has_error

    def test_with_test_file(self):
        result = run_generator("model", GeneratorConfig("Product", "out", {"with_test": True}))

        assert [Path(f.path).name for f in result.files] == ["product.ts", "product.test.ts"]
        test_file = result.files[1].content
        assert "import { describe, it, expect } from 'vitest';" in test_file
        assert "import { productSchema, createProduct } from './product';" in test_file

    def test_bad_field_is_reported(self):
        result = run_generator("model", GeneratorConfig("Product", options={"fields": "name"}))

        assert not result.success
        assert result.files == []
        assert result.errors == ["fields: Expected 'name:type', got 'name'"]


class TestComponentGenerator:
    """Tests for the component generator."""

    def test_props_and_children(self):
        options = {"props": "label:string,disabled?:boolean", "has_children": True}
        result = run_generator("component", GeneratorConfig("button", "ui", options))
        content = result.files[0].content

        assert Path(result.files[0].path) == Path("ui/Button.tsx")
        assert (
            "interface ButtonProps {\n"
            "  label: string;\n"
            "  disabled?: boolean;\n"
            "  children?: React.ReactNode;\n"
            "}\n"
        ) in content
        assert "export function Button({ label, disabled, children }: ButtonProps) {" in content
        assert "      {children}\n" in content
        assert not parse_tree(content, "tsx").root_node.has_error

    def test_plain_component(self):
        content = run_generator("component", GeneratorConfig("Badge")).files[0].content

        assert content.startswith("/**\n * Badge component\n */\n\n")
        assert "export function Badge() {" in content
        assert "interface" not in content

    def test_use_client_comes_first(self):
        options = {"use_client": True, "description": "Shows a count"}
        content = run_generator("component", GeneratorConfig("Counter", options=options)).files[0].content
        assert content.startswith("'use client';\n\n/**\n * Counter component. Shows a count\n */\n")


class TestApiRouteGenerator:
    """Tests for the api-route generator."""

    def test_one_handler_per_method(self):
        result = run_generator("api-route", GeneratorConfig("users", "app/api", {"methods": "get,post,GET"}))
        content = result.files[0].content

        assert Path(result.files[0].path) == Path("app/api/users/route.ts")
        assert "import { NextRequest, NextResponse } from 'next/server';\n\nexport async function GET(" in content
        assert content.count("export async function GET(request: NextRequest) {") == 1
        assert "export async function POST(request: NextRequest) {" in content
        assert "DELETE" not in content
        assert not parse_tree(content).root_node.has_error

    def test_defaults_to_get(self):
        content = run_generator("api-route", GeneratorConfig("health")).files[0].content
        assert "export async function GET(" in content
        assert "POST" not in content

    def test_unsupported_method(self):
        result = run_generator("api-route", GeneratorConfig("users", options={"methods": "GET,FETCH"}))
        assert result.errors == ["methods: Unsupported HTTP method 'FETCH'"]


class TestUnitTestGenerator:
    """Tests for the test generator."""

    def test_describe_per_function(self):
        result = run_generator("test", GeneratorConfig("MathUtils", "tests", {"functions": "add, sub"}))
        content = result.files[0].content

        assert Path(result.files[0].path) == Path("tests/math-utils.test.ts")
        assert "import { add, sub } from './math-utils';" in content
        assert "describe('MathUtils', () => {" in content
        assert "  });\n\n  describe('sub', () => {" in content
        assert "should be implemented" not in content

    def test_placeholder_without_functions(self):
        result = run_generator("test", GeneratorConfig("helpers", options={"import_path": "../src/helpers"}))
        content = result.files[0].content

        assert "// import { ... } from '../src/helpers';" in content
        assert "it('should be implemented', () => {" in content


class TestRegistry:
    """Tests for generator lookup, validation and writing."""

    def test_list_generators(self):
        names = [name for name, _ in list_generators()]
        assert names == ["component", "api-route", "model", "test"]

    def test_unknown_generator(self):
        result = run_generator("widget", GeneratorConfig("x"))
        assert not result.success
        assert result.errors == ["Generator 'widget' not found"]

    @pytest.mark.parametrize("name, prefix", [
        ("", "name: Name is required"),
        ("1thing", "name: Name must start with a letter"),
        ("my.model", "name: Name must start with a letter"),
    ])
    def test_invalid_name(self, name: str, prefix: str):
        result = run_generator("model", GeneratorConfig(name))
        assert result.errors[0].startswith(prefix)

    def test_to_dict(self):
        data = run_generator("test", GeneratorConfig("a")).to_dict()
        assert data["success"] is True
        assert data["generator"] == "test"
        assert data["files"][0]["path"].endswith("a.test.ts")

    def test_write_files_respects_overwrite(self, temp_dir: Path):
        target = temp_dir / "nested" / "a.ts"
        files = [GeneratedFile(str(target), "export const a = 1;\n")]

        assert write_files(files) == ([str(target)], [])
        target.write_text("changed", encoding="utf-8")
        assert write_files(files) == ([], [str(target)])
        assert target.read_text(encoding="utf-8") == "changed"

        assert write_files(files, overwrite=True) == ([str(target)], [])
        assert target.read_text(encoding="utf-8") == "export const a = 1;\n"
