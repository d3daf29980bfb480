"""Flow router — catalog lookups for the review screens."""

from fastapi import APIRouter

from ...flows import Field, default_resolver

router = APIRouter(prefix="/flows", tags=["Flows"])


@router.get("")
async def list_flows():
    """All configured flows and their required steps."""
    return {"flows": default_resolver().catalog.to_dict()}


@router.get("/{name}")
async def get_flow(name: str):
    """Resolved steps and field visibility for a flow name.

    Unknown names resolve to the Default flow; ``resolved`` reports which
    definition was used.
    """
    resolver = default_resolver()
    definition = resolver.definition(name)
    return {
        "name": name,
        "resolved": definition.name,
        "required_steps": [step.value for step in definition.required_steps],
        "visibility": {
            field.value: visible for field, visible in resolver.field_visibility(name).items()
        },
        "placeholder": resolver.placeholder_for(Field.ADDRESS),
    }
