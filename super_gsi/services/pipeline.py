"""End-to-end system swap: validate, transform, package."""

from __future__ import annotations

from pathlib import Path
from typing import Iterable

from super_gsi.cli.prompts import Prompter
from super_gsi.domain import ImageFile, SwapRequest
from super_gsi.logging import LoggerFactory, operation_context
from super_gsi.storage.dependencies import REQUIRED_TOOLS, check_dependencies
from super_gsi.storage.exceptions import ImageNotFoundError, InputError, WorkspaceError
from super_gsi.storage.packager import create_odin_package
from super_gsi.storage.transform import ImageTransformer
from super_gsi.storage.validation import (
    resolve_input_path,
    validate_gsi_image,
    validate_super_image,
    verify_repacked_super,
)
from super_gsi.storage.workspace import Workspace

log = LoggerFactory.for_system()


def validate_output_name(name: str) -> str:
    name = name.strip()
    if not name:
        raise InputError("Output name cannot be empty")
    if "/" in name or name in (".", ".."):
        raise InputError(f"Output name must be a plain file name: {name}")
    return name


def check_inputs_not_overwritten(
    request: SwapRequest, workspace: Workspace, super_is_sparse: bool
) -> None:
    """Refuse a run whose intermediate or final files would land on an input.

    Raises:
        InputError: If an input is one of the files the run writes, or lies
            inside a directory the run recreates.
    """
    written = {
        workspace.root / name
        for name in (request.repacked_name, request.tar_name, request.archive_name)
    }
    if super_is_sparse:
        written.add(workspace.super_raw_path)
    recreated = (workspace.extract_dir, workspace.package_dir)
    for path in (request.super_image, request.gsi_image):
        resolved = Path(path).resolve()
        if resolved in written or any(d in resolved.parents for d in recreated):
            raise InputError(
                f"{path} would be overwritten by this run; "
                "choose another output name or working directory"
            )


class SwapPipeline:
    """Collects a SwapRequest interactively and carries it to an Odin package."""

    def __init__(self, prompter: Prompter, tools: Iterable[str] = REQUIRED_TOOLS):
        self.prompter = prompter
        self.tools = tuple(tools)

    def run(self) -> Path:
        check_dependencies(self.tools)

        log.info("Please provide the paths of the required files:")
        log.info("Tip: use absolute paths (starting with /) or paths relative to here")
        super_path = resolve_input_path(self.prompter.ask("Path to super.img: "))
        gsi_path = resolve_input_path(self.prompter.ask("Path to the GSI (system.img): "))

        super_image, gsi_image = self.validate_inputs(super_path, gsi_path)

        work_dir = self.prompter.ask("Working directory (created if missing): ")
        if not work_dir:
            raise WorkspaceError("Working directory cannot be empty")
        output_name = validate_output_name(
            self.prompter.ask("Output file name (e.g. super_modified): ")
        )
        request = SwapRequest(
            super_image=super_path,
            gsi_image=gsi_path,
            work_dir=Path(work_dir).expanduser(),
            output_name=output_name,
        )
        return self.execute(request, super_image, gsi_image)

    def validate_inputs(
        self, super_path: Path, gsi_path: Path
    ) -> tuple[ImageFile, ImageFile]:
        with operation_context("validate"):
            report, warnings = validate_super_image(super_path, "original super image")
            self.prompter.confirm_warnings(warnings)
            gsi_image, warnings = validate_gsi_image(gsi_path)
            if warnings:
                log.warning("GSI raised warnings during validation")
            self.prompter.confirm_warnings(warnings)
        log.success("Initial validation completed successfully")
        return report.image, gsi_image

    def execute(
        self, request: SwapRequest, super_image: ImageFile, gsi_image: ImageFile
    ) -> Path:
        workspace = Workspace(request.work_dir)
        check_inputs_not_overwritten(request, workspace, super_image.is_sparse)
        workspace.create()

        low_space = workspace.check_free_space(
            super_image.size_bytes + gsi_image.size_bytes
        )
        if low_space is not None:
            self.prompter.confirm_warnings([low_space])

        log.info("Starting modification process...")
        workspace.clean_stale(keep=(request.super_image, request.gsi_image))
        for path in (request.super_image, request.gsi_image):
            if not path.is_file():
                raise ImageNotFoundError(str(path))

        transformer = ImageTransformer(request, workspace, super_image, gsi_image)
        repacked = transformer.run()

        with operation_context("verify", image=str(repacked)):
            verify_repacked_super(repacked)

        with operation_context("package", name=request.archive_name):
            package = create_odin_package(repacked, workspace, request.output_name)

        workspace.cleanup(remove_super_raw=transformer.super_raw_generated)
        log.success(f"Odin file created: {package}")
        return package
