"""Jinja2-based scaffolding of TypeScript source files.

Each generator validates a :class:`GeneratorConfig`, builds a template
context (doc headers and import lines come from the printer helpers) and
renders one or more :class:`GeneratedFile` objects. Nothing touches the disk
until :func:`write_files` is called.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Tuple, Type, Union

from jinja2 import DictLoader, Environment, StrictUndefined, TemplateError

from .file_system import write_text
from .printer import generate_doc, generate_import_statement
from .strings import camel_case, constant_case, indent, kebab_case, pascal_case, pluralize, snake_case

logger = logging.getLogger(__name__)

NAME_PATTERN = re.compile(r"^[a-zA-Z][a-zA-Z0-9_-]*$")
HTTP_METHODS = ("GET", "POST", "PUT", "PATCH", "DELETE")

TEMPLATES: Dict[str, str] = {
    "component.tsx": """\
{% if use_client %}
'use client';

{% endif %}
{{ header }}

{% if props or has_children %}
interface {{ name | pascal_case }}Props {
{% for prop in props %}
  {{ prop.name }}{% if prop.optional %}?{% endif %}: {{ prop.type }};
{% endfor %}
{% if has_children %}
  children?: React.ReactNode;
{% endif %}
}

{% endif %}
export function {{ name | pascal_case }}({{ signature }}) {
  return (
    <div>
      <h2>{{ name | pascal_case }}</h2>
{% if has_children %}
      {children}
{% endif %}
    </div>
  );
}
""",
    "api-route.ts": """\
{{ header }}

{{ imports }}
{% if has_auth %}
// import { requireAuth } from '@/lib/auth';
{% endif %}
{% for method in methods %}

export async function {{ method }}(request: NextRequest) {
  try {
{% if method == "GET" %}
    const id = new URL(request.url).searchParams.get('id');
    return NextResponse.json({ id, message: '{{ name }} GET endpoint' });
{% elif method == "POST" %}
    const body = await request.json();
    if (!body) {
      return NextResponse.json({ error: 'Request body is required' }, { status: 400 });
    }
    return NextResponse.json({ success: true, data: body }, { status: 201 });
{% else %}
    const id = new URL(request.url).searchParams.get('id');
    if (!id) {
      return NextResponse.json({ error: 'ID is required' }, { status: 400 });
    }
{% if method == "DELETE" %}
    return NextResponse.json({ success: true, id });
{% else %}
    const body = await request.json();
    return NextResponse.json({ success: true, id, data: body });
{% endif %}
{% endif %}
  } catch (error) {
    console.error('{{ name }} {{ method }} error:', error);
    return NextResponse.json({ error: 'Internal Server Error' }, { status: 500 });
  }
}
{% endfor %}
""",
    "model.ts": """\
{{ header }}

{{ imports }}

export const {{ name | camel_case }}Schema = z.object({
  id: z.string().uuid(),
{% for field in fields %}
  {{ field.name }}: z.{{ field.type }}(){% if field.optional %}.optional(){% endif %},
{% endfor %}
{% if has_timestamps %}
  createdAt: z.date(),
  updatedAt: z.date(),
{% endif %}
});

export const create{{ name | pascal_case }}Schema = {{ name | camel_case }}Schema.omit({
  id: true,
{% if has_timestamps %}
  createdAt: true,
  updatedAt: true,
{% endif %}
});

export const update{{ name | pascal_case }}Schema = create{{ name | pascal_case }}Schema.partial();

export type {{ name | pascal_case }} = z.infer<typeof {{ name | camel_case }}Schema>;
export type Create{{ name | pascal_case }} = z.infer<typeof create{{ name | pascal_case }}Schema>;
export type Update{{ name | pascal_case }} = z.infer<typeof update{{ name | pascal_case }}Schema>;

{{ factory_doc }}
export function create{{ name | pascal_case }}(data: Create{{ name | pascal_case }}): {{ name | pascal_case }} {
{% if has_timestamps %}
  const now = new Date();
{% endif %}
  return {
    id: crypto.randomUUID(),
    ...data,
{% if has_timestamps %}
    createdAt: now,
    updatedAt: now,
{% endif %}
  };
}
""",
    "test.ts": """\
{{ header }}

{{ imports }}
{% if not functions %}
// import { ... } from '{{ import_path }}';
{% endif %}

describe('{{ name | pascal_case }}', () => {
{% for fn in functions %}
  describe('{{ fn }}', () => {
    it('should exist', () => {
      expect({{ fn }}).toBeDefined();
    });
  });
{% if not loop.last %}

{% endif %}
{% endfor %}
{% if not functions %}
  it('should be implemented', () => {
    expect(true).toBe(true);
  });
{% endif %}
});
""",
}


def create_environment() -> Environment:
    """Jinja2 environment with the built-in templates and case filters."""
    env = Environment(
        loader=DictLoader(TEMPLATES),
        trim_blocks=True,
        lstrip_blocks=True,
        keep_trailing_newline=True,
        undefined=StrictUndefined,
        autoescape=False,
    )
    env.filters.update({
        "pascal_case": pascal_case,
        "camel_case": camel_case,
        "kebab_case": kebab_case,
        "snake_case": snake_case,
        "constant_case": constant_case,
        "pluralize": pluralize,
        "indent_by": indent,
    })
    return env


# ===================================================================
# Data model
# ===================================================================

@dataclass
class GeneratorConfig:
    """Input to a generator."""
    name: str
    output_dir: str = "generated"
    options: Dict[str, Any] = field(default_factory=dict)


@dataclass
class GeneratedFile:
    path: str
    content: str


@dataclass
class GenerationResult:
    """Outcome of one generator run; ``files`` is empty on failure."""
    success: bool
    generator: str
    files: List[GeneratedFile] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": self.success,
            "generator": self.generator,
            "files": [{"path": f.path, "content": f.content} for f in self.files],
            "errors": list(self.errors),
        }


def parse_typed_names(specs: Union[str, Sequence[Any], None]) -> List[Dict[str, Any]]:
    """Turn ``"name:string,nick?:string"`` (or a list of such) into field dicts.

    Dict entries are passed through with ``optional`` defaulted to False.

    Raises:
        ValueError: if an entry has no name or no type.
    """
    if specs is None:
        return []
    if isinstance(specs, str):
        specs = [part for part in specs.split(",") if part.strip()]

    parsed: List[Dict[str, Any]] = []
    for spec in specs:
        if isinstance(spec, dict):
            name, type_ = spec.get("name"), spec.get("type")
            optional = bool(spec.get("optional", False))
        else:
            name, _, type_ = str(spec).partition(":")
            name, type_ = name.strip(), type_.strip()
            optional = name.endswith("?")
            name = name.rstrip("?")
        if not name or not type_:
            raise ValueError(f"Expected 'name:type', got {spec!r}")
        parsed.append({"name": name, "type": type_, "optional": optional})
    return parsed


def _split_list(value: Union[str, Sequence[str], None]) -> List[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [part.strip() for part in value.split(",") if part.strip()]
    return [str(part).strip() for part in value if str(part).strip()]


# ===================================================================
# Generators
# ===================================================================

class ScaffoldGenerator:
    """Base class: validation, error capture and template rendering."""

    name = ""
    description = ""

    def __init__(self, env: Optional[Environment] = None):
        self.env = env or create_environment()

    def validate(self, config: GeneratorConfig) -> List[str]:
        errors: List[str] = []
        if not config.name or not config.name.strip():
            errors.append("name: Name is required")
        elif not NAME_PATTERN.match(config.name):
            errors.append(
                "name: Name must start with a letter and contain only "
                "alphanumeric characters, hyphens, or underscores"
            )
        if not config.output_dir or not str(config.output_dir).strip():
            errors.append("output_dir: Output directory is required")
        errors.extend(self.validate_options(config.options))
        return errors

    def validate_options(self, options: Dict[str, Any]) -> List[str]:
        return []

    def generate(self, config: GeneratorConfig) -> GenerationResult:
        errors = self.validate(config)
        if errors:
            return GenerationResult(success=False, generator=self.name, errors=errors)
        try:
            files = self.generate_files(config)
        except (TemplateError, ValueError) as e:
            logger.warning("%s generator failed: %s", self.name, e)
            return GenerationResult(success=False, generator=self.name, errors=[str(e)])
        return GenerationResult(success=True, generator=self.name, files=files)

    def generate_files(self, config: GeneratorConfig) -> List[GeneratedFile]:
        raise NotImplementedError

    def render(self, template_id: str, **context: Any) -> str:
        return self.env.get_template(template_id).render(**context)

    @staticmethod
    def path(config: GeneratorConfig, filename: str) -> str:
        return str(Path(config.output_dir) / filename)

    def render_test(self, name: str, import_path: str, functions: List[str]) -> str:
        imports = [generate_import_statement("vitest", named_imports=["describe", "it", "expect"])]
        if functions:
            imports.append(generate_import_statement(import_path, named_imports=functions))
        return self.render(
            "test.ts",
            name=name,
            header=generate_doc(f"Tests for {pascal_case(name)}"),
            imports="\n".join(imports),
            import_path=import_path,
            functions=functions,
        )


class ComponentGenerator(ScaffoldGenerator):
    name = "component"
    description = "React function component with a typed props interface"

    def validate_options(self, options: Dict[str, Any]) -> List[str]:
        try:
            parse_typed_names(options.get("props"))
        except ValueError as e:
            return [f"props: {e}"]
        return []

    def generate_files(self, config: GeneratorConfig) -> List[GeneratedFile]:
        opts = config.options
        component = pascal_case(config.name)
        props = parse_typed_names(opts.get("props"))
        has_children = bool(opts.get("has_children", False))

        bindings = [p["name"] for p in props] + (["children"] if has_children else [])
        signature = f"{{ {', '.join(bindings)} }}: {component}Props" if bindings else ""
        summary = f"{component} component"
        if opts.get("description"):
            summary += f". {opts['description']}"

        files = [GeneratedFile(
            path=self.path(config, f"{component}.tsx"),
            content=self.render(
                "component.tsx",
                name=config.name,
                header=generate_doc(summary),
                props=props,
                has_children=has_children,
                use_client=bool(opts.get("use_client", False)),
                signature=signature,
            ),
        )]
        if opts.get("with_test"):
            files.append(GeneratedFile(
                path=self.path(config, f"{component}.test.tsx"),
                content=self.render_test(config.name, f"./{component}", [component]),
            ))
        return files


class ApiRouteGenerator(ScaffoldGenerator):
    name = "api-route"
    description = "Next.js route handler with one export per HTTP method"

    def validate_options(self, options: Dict[str, Any]) -> List[str]:
        return [
            f"methods: Unsupported HTTP method '{method}'"
            for method in _split_list(options.get("methods"))
            if method.upper() not in HTTP_METHODS
        ]

    def generate_files(self, config: GeneratorConfig) -> List[GeneratedFile]:
        opts = config.options
        methods: List[str] = []
        for method in _split_list(opts.get("methods")) or ["GET"]:
            if method.upper() not in methods:
                methods.append(method.upper())

        summary = f"{pascal_case(config.name)} API route"
        if opts.get("description"):
            summary += f". {opts['description']}"

        content = self.render(
            "api-route.ts",
            name=config.name,
            header=generate_doc(summary),
            imports=generate_import_statement("next/server", named_imports=["NextRequest", "NextResponse"]),
            has_auth=bool(opts.get("has_auth", False)),
            methods=methods,
        )
        return [GeneratedFile(path=self.path(config, f"{kebab_case(config.name)}/route.ts"), content=content)]


class ModelGenerator(ScaffoldGenerator):
    name = "model"
    description = "Zod schema with derived types and a factory function"

    DEFAULT_FIELDS = "name:string,email:string"

    def validate_options(self, options: Dict[str, Any]) -> List[str]:
        try:
            parse_typed_names(options.get("fields"))
        except ValueError as e:
            return [f"fields: {e}"]
        return []

    def generate_files(self, config: GeneratorConfig) -> List[GeneratedFile]:
        opts = config.options
        model = pascal_case(config.name)
        filename = kebab_case(config.name)
        summary = f"{model} data model"
        if opts.get("description"):
            summary += f". {opts['description']}"

        content = self.render(
            "model.ts",
            name=config.name,
            header=generate_doc(summary),
            imports=generate_import_statement("zod", named_imports=["z"]),
            fields=parse_typed_names(opts.get("fields") or self.DEFAULT_FIELDS),
            has_timestamps=bool(opts.get("has_timestamps", True)),
            factory_doc=generate_doc(
                f"Create a {model} with a fresh id.",
                params=[{"name": "data", "type": f"Create{model}", "description": "Field values"}],
                returns={"type": model, "description": f"The new {model}"},
            ),
        )
        files = [GeneratedFile(path=self.path(config, f"{filename}.ts"), content=content)]
        if opts.get("with_test"):
            files.append(GeneratedFile(
                path=self.path(config, f"{filename}.test.ts"),
                content=self.render_test(
                    config.name, f"./{filename}", [f"{camel_case(config.name)}Schema", f"create{model}"]
                ),
            ))
        return files


class UnitTestGenerator(ScaffoldGenerator):
    name = "test"
    description = "Vitest suite with one describe block per function"

    def generate_files(self, config: GeneratorConfig) -> List[GeneratedFile]:
        filename = kebab_case(config.name)
        import_path = config.options.get("import_path") or f"./{filename}"
        functions = _split_list(config.options.get("functions"))
        return [GeneratedFile(
            path=self.path(config, f"{filename}.test.ts"),
            content=self.render_test(config.name, import_path, functions),
        )]


GENERATORS: Dict[str, Type[ScaffoldGenerator]] = {
    cls.name: cls
    for cls in (ComponentGenerator, ApiRouteGenerator, ModelGenerator, UnitTestGenerator)
}


def list_generators() -> List[Tuple[str, str]]:
    return [(name, cls.description) for name, cls in GENERATORS.items()]


def run_generator(name: str, config: GeneratorConfig) -> GenerationResult:
    """Run the generator registered under *name*."""
    cls = GENERATORS.get(name)
    if cls is None:
        return GenerationResult(success=False, generator=name, errors=[f"Generator '{name}' not found"])
    return cls().generate(config)


def write_files(files: Sequence[GeneratedFile], overwrite: bool = False) -> Tuple[List[str], List[str]]:
    """Write generated files; returns ``(written, skipped)`` paths."""
    written: List[str] = []
    skipped: List[str] = []
    for generated in files:
        if write_text(Path(generated.path), generated.content, overwrite=overwrite):
            written.append(generated.path)
        else:
            skipped.append(generated.path)
    return written, skipped
