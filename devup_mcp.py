#!/usr/bin/env python3
"""
Devup MCP Server - Model Context Protocol server that turns Figma designs into Devup UI code.

This server provides tools to:
- Generate Devup UI (React) components from a Figma node, merging
  breakpoint frames and component-set variants into one component
- Inspect the canonical Devup property map of a single node
"""

import json
import re
from enum import Enum
from typing import Optional

import httpx
from pydantic import BaseModel, Field, field_validator, ConfigDict
from mcp.server.fastmcp import FastMCP

from devup_codegen import (
    CodegenSession,
    CodegenSettings,
    FigmaClient,
    FigmaRestFactProvider,
    configure_logging,
    generate,
)
from devup_codegen.base import to_pascal

# ============================================================================
# Constants
# ============================================================================

CHARACTER_LIMIT = 25000

# ============================================================================
# Initialize MCP Server
# ============================================================================

mcp = FastMCP("devup_mcp")

# ============================================================================
# Enums and Types
# ============================================================================

class ResponseFormat(str, Enum):
    """Output format for tool responses."""
    MARKDOWN = "markdown"
    JSON = "json"


# ============================================================================
# Pydantic Input Models
# ============================================================================

def _extract_file_key(v: str) -> str:
    # Extract file key from URL if full URL provided
    if 'figma.com' in v:
        match = re.search(r'figma\.com/(?:design|file)/([a-zA-Z0-9]+)', v)
        if match:
            return match.group(1)
        raise ValueError("Could not extract file key from Figma URL")
    return v


class DevupCodeGenInput(BaseModel):
    """Input model for Devup code generation."""
    model_config = ConfigDict(str_strip_whitespace=True, validate_assignment=True)

    file_key: str = Field(..., description="Figma file key or file URL", min_length=10)
    node_id: str = Field(..., description="Node ID (e.g., '1:2' or '1-2')", min_length=1)
    component_name: Optional[str] = Field(
        default=None,
        description="Component name (derived from the node name if not provided)"
    )

    @field_validator('file_key')
    @classmethod
    def validate_file_key(cls, v: str) -> str:
        return _extract_file_key(v)

    @field_validator('node_id')
    @classmethod
    def normalize_node_id(cls, v: str) -> str:
        # Convert 1-2 format to 1:2
        return v.replace('-', ':')

    @field_validator('component_name')
    @classmethod
    def validate_component_name(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        name = to_pascal(v)
        if not name:
            raise ValueError("Component name must contain letters or digits")
        if not name[0].isalpha():
            name = 'Component' + name
        return name


class DevupPropsInput(BaseModel):
    """Input model for property inspection."""
    model_config = ConfigDict(str_strip_whitespace=True, validate_assignment=True)

    file_key: str = Field(..., description="Figma file key or file URL", min_length=10)
    node_id: str = Field(..., description="Node ID (e.g., '1:2' or '1-2')", min_length=1)
    response_format: ResponseFormat = Field(
        default=ResponseFormat.MARKDOWN,
        description="Output format: 'markdown' or 'json'"
    )

    @field_validator('file_key')
    @classmethod
    def validate_file_key(cls, v: str) -> str:
        return _extract_file_key(v)

    @field_validator('node_id')
    @classmethod
    def normalize_node_id(cls, v: str) -> str:
        return v.replace('-', ':')


# ============================================================================
# Helpers
# ============================================================================

def _create_client() -> FigmaClient:
    """Figma client configured from the environment."""
    return FigmaClient(CodegenSettings.from_env())


async def _load_session(file_key: str, node_id: str) -> CodegenSession:
    provider = FigmaRestFactProvider(_create_client(), file_key)
    if await provider.load(node_id) is None:
        raise ValueError(f"Node '{node_id}' not found.")
    return CodegenSession(provider)


def _handle_api_error(e: Exception) -> str:
    """Format API errors for user-friendly messages."""
    if isinstance(e, httpx.HTTPStatusError):
        status = e.response.status_code
        if status == 401:
            return "Error: Invalid Figma API token. Check your FIGMA_ACCESS_TOKEN environment variable."
        elif status == 403:
            return "Error: Access denied. You don't have permission to view this file."
        elif status == 404:
            return "Error: File or node not found. Check the file key and node ID."
        elif status == 429:
            return "Error: Rate limit exceeded. Please wait before making more requests."
        return f"Error: Figma API returned status {status}"
    elif isinstance(e, httpx.TimeoutException):
        return "Error: Request timed out. The file might be too large."
    elif isinstance(e, ValueError):
        return f"Error: {str(e)}"
    return f"Error: {type(e).__name__}: {str(e)}"


def _truncate(text: str) -> str:
    if len(text) <= CHARACTER_LIMIT:
        return text
    return text[:CHARACTER_LIMIT] + "\n\n... (truncated)"


# ============================================================================
# Tools
# ============================================================================

@mcp.tool(
    name="figma_generate_devup_code",
    annotations={
        "title": "Generate Devup UI Code from Figma",
        "readOnlyHint": True,
        "destructiveHint": False,
        "idempotentHint": True,
        "openWorldHint": True
    }
)
async def figma_generate_devup_code(params: DevupCodeGenInput) -> str:
    """
    Generate Devup UI components from a Figma node.

    Sections holding one frame per breakpoint become a single responsive
    component. Component sets become one component whose props are keyed by
    variant, with hover/active states as pseudo-selector props and viewport
    variants merged responsively. Referenced components are emitted too.

    Args:
        params: DevupCodeGenInput containing:
            - file_key (str): Figma file key
            - node_id (str): Node ID to convert
            - component_name (Optional[str]): Custom name for the top-level component

    Returns:
        str: Markdown with one tsx block per generated component
    """
    try:
        session = await _load_session(params.file_key, params.node_id)
        components = await generate(session, params.node_id, params.component_name)

        lines = [
            f"# Devup Code: {components[0].name if components else params.node_id}",
            f"**Source Node:** `{params.node_id}`",
            "",
        ]
        for component in components:
            lines.extend([f"## {component.name}", "", "```tsx", component.code, "```", ""])
        return _truncate("\n".join(lines))

    except Exception as e:
        return _handle_api_error(e)


@mcp.tool(
    name="figma_get_devup_props",
    annotations={
        "title": "Get Devup Props of a Figma Node",
        "readOnlyHint": True,
        "destructiveHint": False,
        "idempotentHint": True,
        "openWorldHint": True
    }
)
async def figma_get_devup_props(params: DevupPropsInput) -> str:
    """
    Get the canonical Devup property map of one Figma node.

    Args:
        params: DevupPropsInput containing:
            - file_key (str): Figma file key
            - node_id (str): Node ID to inspect
            - response_format: 'markdown' or 'json'

    Returns:
        str: Property map of the node
    """
    try:
        session = await _load_session(params.file_key, params.node_id)
        props = await session.extractor.get_props(params.node_id)
        props = {k: v for k, v in props.items() if v is not None}
        facts = session.provider.get_node_facts(params.node_id)

        if params.response_format == ResponseFormat.JSON:
            return json.dumps({
                "node_id": params.node_id,
                "name": facts.name if facts else None,
                "type": facts.type if facts else None,
                "props": props,
            }, indent=2, ensure_ascii=False)

        lines = [
            f"# Devup Props: {facts.name if facts else params.node_id}",
            f"**Type:** {facts.type if facts else 'UNKNOWN'}",
            "",
        ]
        if not props:
            lines.append("_No props._")
        for key in sorted(props):
            value = props[key]
            rendered = json.dumps(value, ensure_ascii=False) if not isinstance(value, str) else value
            lines.append(f"- **{key}**: `{rendered}`")
        return _truncate("\n".join(lines))

    except Exception as e:
        return _handle_api_error(e)


# ============================================================================
# Entry Point
# ============================================================================

if __name__ == "__main__":
    configure_logging(CodegenSettings.from_env())
    mcp.run()
