"""Shell endpoints: the sidebar (which sections exist) and section metadata."""

from fastapi import APIRouter

from catalog_admin.services.sections import DEFAULT_SECTION, SECTIONS, SectionKind, get_section

router = APIRouter()


@router.get("/sections")
async def list_sections() -> dict:
    """Sidebar items in display order."""
    return {
        "default": DEFAULT_SECTION,
        "sections": [cfg.menu_item() for cfg in SECTIONS.values()],
    }


@router.get("/sections/{section_id}")
async def describe_section(section_id: str) -> dict:
    """Section metadata plus empty add-form values."""
    cfg = get_section(section_id)
    out = {
        **cfg.menu_item(),
        "editable": cfg.editable,
        "required": list(cfg.required),
        "confirm": cfg.confirm_message,
    }
    if cfg.editable:
        out["defaults"] = cfg.defaults()
    if cfg.kind == SectionKind.NESTED:
        out["item_required"] = list(cfg.item_required)
        out["item_defaults"] = cfg.defaults(item=True)
    return out
