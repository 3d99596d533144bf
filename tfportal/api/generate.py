"""Synthesis API routes.

Serves the landing form and turns form or JSON submissions into a written
Terraform document.
"""

import logging
from pathlib import Path

from fastapi import APIRouter, Depends, Form, HTTPException, Request, status
from fastapi.responses import HTMLResponse
from fastapi.templating import Jinja2Templates

from tfportal.api.deps import get_component_factory, get_synthesizer
from tfportal.api.schemas import GenerateRequest, GenerateResponse
from tfportal.core.factory import ComponentFactory
from tfportal.interfaces.template import SynthesisError
from tfportal.strategies.template_engine.synthesizer import ConfigSynthesizer

logger = logging.getLogger(__name__)

PAGES_DIR = Path(__file__).resolve().parent.parent / "web" / "templates"

pages = Jinja2Templates(directory=str(PAGES_DIR))

router = APIRouter(tags=["generate"])

FOLLOW_UP_COMMANDS = [
    "terraform fmt",
    "git add .",
    'git commit -m "Update infra with custom SG and Subnet"',
    "git push",
]


# =============================================================================
# Endpoints
# =============================================================================


@router.get("/", response_class=HTMLResponse)
def index(
    request: Request,
    factory: ComponentFactory = Depends(get_component_factory),
) -> HTMLResponse:
    """Render the landing page with the infrastructure form."""
    registry = factory.get_registry()
    return pages.TemplateResponse(
        request,
        "index.html",
        {
            "variants": registry.keys(),
            "default_cidr": factory.settings.default_cidr,
        },
    )


@router.post("/generate", response_class=HTMLResponse)
def generate_from_form(
    request: Request,
    provider: str = Form(default=""),
    topology: str = Form(default=""),
    server_name: str = Form(default="", alias="serverName"),
    instance_type: str = Form(default="", alias="instanceType"),
    region: str = Form(default=""),
    sg_name: str = Form(default="", alias="sgName"),
    subnet_mode: str = Form(default="", alias="subnetMode"),
    custom_cidr: str = Form(default="", alias="customCidr"),
    capacity: str = Form(default=""),
    install_nginx: str = Form(default="", alias="installNginx"),
    synthesizer: ConfigSynthesizer = Depends(get_synthesizer),
) -> HTMLResponse:
    """Generate main.tf from an HTML form submission.

    Returns:
        Success page summarizing the generated configuration.

    Raises:
        SynthesisError: Mapped to an error response by the application.
        HTTPException: On unexpected failures.
    """
    form = GenerateRequest(
        provider=provider,
        topology=topology,
        server_name=server_name,
        instance_type=instance_type,
        region=region,
        sg_name=sg_name,
        subnet_mode=subnet_mode,
        custom_cidr=custom_cidr,
        capacity=capacity,
        install_nginx=install_nginx,
    )

    try:
        result = synthesizer.synthesize(form.to_form())
    except SynthesisError:
        raise
    except Exception as e:
        logger.error(f"Form synthesis failed: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Synthesis failed: {str(e)}",
        ) from e

    return pages.TemplateResponse(
        request,
        "success.html",
        {
            "summary": GenerateResponse.from_result(result),
            "commands": FOLLOW_UP_COMMANDS,
        },
    )


@router.post(
    "/api/generate",
    response_model=GenerateResponse,
    status_code=status.HTTP_201_CREATED,
)
def generate_from_json(
    request: GenerateRequest,
    synthesizer: ConfigSynthesizer = Depends(get_synthesizer),
) -> GenerateResponse:
    """Generate main.tf from a JSON submission.

    Args:
        request: Submission with the same fields as the HTML form.
        synthesizer: Configuration synthesizer.

    Returns:
        GenerateResponse describing the written document.
    """
    try:
        result = synthesizer.synthesize(request.to_form())
        return GenerateResponse.from_result(result)
    except SynthesisError:
        raise
    except Exception as e:
        logger.error(f"JSON synthesis failed: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Synthesis failed: {str(e)}",
        ) from e
