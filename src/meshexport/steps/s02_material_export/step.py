"""Step 02: Material export, material slots -> MTL + texture images.

Writes <base_name>.mtl next to the OBJ and one image per resolved texture in
the Textures/ folder. Nothing in this step is fatal: broken textures leave
their material untextured and a failed .mtl write is reported in the output.
"""

from __future__ import annotations

from typing import ClassVar

from meshexport.core.step_base import BaseStep
from .config import MaterialExportConfig
from .contracts import MaterialExportInput, MaterialExportOutput


class MaterialExportStep(
    BaseStep[MaterialExportInput, MaterialExportOutput, MaterialExportConfig]
):
    name: ClassVar[str] = "material_export"
    input_type: ClassVar = MaterialExportInput
    output_type: ClassVar = MaterialExportOutput
    config_type: ClassVar = MaterialExportConfig

    def validate_inputs(self, inputs: MaterialExportInput) -> bool:
        if not inputs.base_name:
            self.log.error("Material library needs a non-empty base name")
            return False
        return True

    def run(self, inputs: MaterialExportInput) -> MaterialExportOutput:
        from ._mtl_writer import export_materials

        library = export_materials(
            inputs.slots,
            inputs.output_dir,
            inputs.base_name,
            config=self.config,
            log=self.log,
        )

        self.log.info(
            f"Material export complete: {len(library.material_names)} materials, "
            f"{len(library.texture_paths)} textured, "
            f"{len(library.skipped_slots)} empty slots"
        )

        return MaterialExportOutput(
            mtl_path=library.mtl_path,
            num_materials=len(library.material_names),
            num_textures=len(library.texture_paths),
            skipped_slots=library.skipped_slots,
            texture_paths=library.texture_paths,
        )
