"""
Documentation generation from a live schema with Jinja2 templates.

Schema templates receive ``tables`` (list of TableSchema) and ``links``
(list of Link); table templates receive ``table``.
"""
import logging
from collections.abc import Sequence
from pathlib import Path
from typing import TYPE_CHECKING

from jinja2 import Environment, FileSystemLoader, StrictUndefined, Template
from jinja2 import select_autoescape

from dbmap.schema import TableSchema, build_links, fetch_all_schemas

if TYPE_CHECKING:
    from dbmap.connection import Database

logger = logging.getLogger(__name__)

__all__ = [
    'load_template',
    'render_schema_document',
    'render_table_document',
    'generate_schema_document',
    'generate_table_documents',
]


def load_template(template_path: str | Path) -> Template:
    """Load one template file, resolving includes from its directory."""
    template_path = Path(template_path)
    env = Environment(
        loader=FileSystemLoader(str(template_path.parent)),
        autoescape=select_autoescape(['html', 'xml']),
        undefined=StrictUndefined,
        trim_blocks=True,
        lstrip_blocks=True,
    )
    return env.get_template(template_path.name)


def render_schema_document(template: Template, schemas: Sequence[TableSchema]) -> str:
    return template.render(tables=list(schemas), links=build_links(schemas))


def render_table_document(template: Template, table: TableSchema) -> str:
    return template.render(table=table)


def generate_schema_document(db: 'Database', template_path: str | Path,
                             output_path: str | Path) -> None:
    """Render one document describing every table and the links between them.
    """
    template = load_template(template_path)
    schemas = fetch_all_schemas(db)
    Path(output_path).write_text(render_schema_document(template, schemas))
    logger.info(f'Generated schema document {output_path} for {len(schemas)} tables')


def generate_table_documents(db: 'Database', template_path: str | Path,
                             output_folder: str | Path, extension: str) -> list[Path]:
    """Render one ``<table>.<extension>`` file per table into ``output_folder``.

    Returns
        Paths of the generated files
    """
    template = load_template(template_path)
    folder = Path(output_folder)
    folder.mkdir(parents=True, exist_ok=True)
    written = []
    for table in fetch_all_schemas(db):
        path = folder / f'{table.name}.{extension.lstrip(".")}'
        path.write_text(render_table_document(template, table))
        written.append(path)
    logger.info(f'Generated {len(written)} table documents in {folder}')
    return written
