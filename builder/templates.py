# ============================================================================
# GENERATED FILE TEMPLATES
# ============================================================================
# EPOCH: 1 - CONTAINER BUILDS
# STATUS: Core - Jinja2 templates for the build context
# PURPOSE: Render the entry-point shim and the container build descriptor
# CREATED: 11 OCT 2026
# ============================================================================
"""
Generated File Templates

Two files are written into the build root of every Node function:

- mdsEntry.js: wraps the user's export in the Fn FDK handler. Promises are
  awaited and falsy results are replaced with an empty object so the FDK
  always has something to serialize.
- MdsDockerfile: two-stage build. Stage one installs production
  dependencies only; stage two copies the project and those dependencies
  onto the Fn Node runtime image and runs the shim.

Dockerfile layout follows the Fn "container as function" tutorial.
"""

import re
from typing import Tuple

from jinja2 import BaseLoader, Environment, StrictUndefined

from core.errors import ConfigurationError

ENTRY_FILE_NAME = "mdsEntry.js"
DOCKERFILE_NAME = "MdsDockerfile"

_MODULE_PATTERN = re.compile(r"^[A-Za-z0-9_@][A-Za-z0-9_./@-]*$")
_EXPORT_PATTERN = re.compile(r"^[A-Za-z_$][A-Za-z0-9_$]*$")

NODE_ENTRY_POINT_TEMPLATE = """\
const fdk = require('@fnproject/fdk');
const userModule = require('./{{ module_name }}');

fdk.handle((input) => {
  const result = userModule.{{ export_name }}(input);
  if (result && result.then && typeof result.then === 'function') {
    return result.then((innerResult) => innerResult || {});
  }
  return result || {};
});
"""

NODE_DOCKERFILE_TEMPLATE = """\
FROM {{ build_image }} as build-stage
WORKDIR /function
ADD package.json /function/
RUN npm install --only=prod

FROM {{ runtime_image }}
WORKDIR /function
ADD . /function/
COPY --from=build-stage /function/node_modules/ /function/node_modules/
ENTRYPOINT ["node", "{{ entry_file }}"]
"""

_env = Environment(
    loader=BaseLoader(),
    autoescape=False,
    undefined=StrictUndefined,
    keep_trailing_newline=True,
)


def parse_entry_point(entry_point: str) -> Tuple[str, str]:
    """
    Split "module:export" into its parts.

    Raises:
        ConfigurationError: If either part is missing or not a safe identifier
    """
    module_name, sep, export_name = (entry_point or "").partition(":")
    module_name = module_name.strip()
    export_name = export_name.strip()

    if not sep or not _MODULE_PATTERN.match(module_name) or not _EXPORT_PATTERN.match(export_name):
        raise ConfigurationError(
            f'Entry point "{entry_point}" must be of the form "module:export"'
        )
    return module_name, export_name


def render_node_entry_point(entry_point: str) -> str:
    """Render the Fn FDK shim for a "module:export" entry point."""
    module_name, export_name = parse_entry_point(entry_point)
    return _env.from_string(NODE_ENTRY_POINT_TEMPLATE).render(
        module_name=module_name,
        export_name=export_name,
    )


def render_node_dockerfile(
    entry_file: str = ENTRY_FILE_NAME,
    build_image: str = "fnproject/node:dev",
    runtime_image: str = "fnproject/node",
) -> str:
    """Render the two-stage Dockerfile that runs entry_file."""
    return _env.from_string(NODE_DOCKERFILE_TEMPLATE).render(
        entry_file=entry_file,
        build_image=build_image,
        runtime_image=runtime_image,
    )


__all__ = [
    "ENTRY_FILE_NAME",
    "DOCKERFILE_NAME",
    "parse_entry_point",
    "render_node_entry_point",
    "render_node_dockerfile",
]
