# portal_service/app/rendering.py

from pathlib import Path

from fastapi.templating import Jinja2Templates

templates = Jinja2Templates(directory=str(Path(__file__).parent / "templates"))


def render(request, name, **context):
    return templates.TemplateResponse(request, name, context)
