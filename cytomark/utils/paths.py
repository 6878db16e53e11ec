"""
Path configuration and management utilities for CytoMark.

This module provides centralized path management so every pipeline stage
writes its tables and figures into a consistent output directory tree.
"""

from pathlib import Path
from typing import Optional, Union


class CytoMarkPathManager:
    """
    Centralized path management for CytoMark outputs.

    Directories are created lazily through :meth:`ensure_dir` so that a
    run with plotting and export disabled leaves no empty folders behind.
    """

    COMPONENTS = (
        'data_loading',
        'outliers',
        'clustering',
        'association',
        'models',
        'sweep',
        'forest',
    )

    def __init__(self, base_output_dir: Union[str, Path] = "cytomark_outputs"):
        """
        Initialize path manager.

        Parameters
        ----------
        base_output_dir : str or Path
            Base directory for all CytoMark outputs
        """
        self.base_dir = Path(base_output_dir).resolve()

    @property
    def data_loading_dir(self) -> Path:
        """Get data loading output directory."""
        return self.base_dir / "data_loading"

    @property
    def outliers_dir(self) -> Path:
        """Get PCA outlier filter output directory."""
        return self.base_dir / "outliers"

    @property
    def clustering_dir(self) -> Path:
        """Get hierarchical clustering output directory."""
        return self.base_dir / "clustering"

    @property
    def association_dir(self) -> Path:
        """Get karyotype association output directory."""
        return self.base_dir / "association"

    @property
    def models_dir(self) -> Path:
        """Get penalized regression output directory."""
        return self.base_dir / "models"

    @property
    def sweep_dir(self) -> Path:
        """Get hyperparameter sweep output directory."""
        return self.base_dir / "sweep"

    @property
    def forest_dir(self) -> Path:
        """Get random forest output directory."""
        return self.base_dir / "forest"

    def component_dir(self, component: str) -> Path:
        """
        Get the directory of a named component.

        Parameters
        ----------
        component : str
            One of :attr:`COMPONENTS`

        Returns
        -------
        Path
            Directory path (not created)
        """
        if component not in self.COMPONENTS:
            raise ValueError(f"Unknown component: {component}. "
                             f"Available components: {list(self.COMPONENTS)}")
        return getattr(self, f"{component}_dir")

    def ensure_dir(self, directory: Union[str, Path]) -> Path:
        """
        Ensure directory exists and return Path object.

        Parameters
        ----------
        directory : str or Path
            Directory path to create

        Returns
        -------
        Path
            Path object for the directory
        """
        dir_path = Path(directory)
        dir_path.mkdir(parents=True, exist_ok=True)
        return dir_path

    def get_relative_path(self, target_dir: Union[str, Path]) -> str:
        """Get the path of ``target_dir`` relative to the working directory when possible."""
        target_path = Path(target_dir)
        try:
            return str(target_path.relative_to(Path.cwd()))
        except ValueError:
            return str(target_path.resolve())


def get_output_dir(component: str, base_dir: Optional[Union[str, Path]] = None) -> str:
    """
    Get (and create) the output directory for a specific component.

    Parameters
    ----------
    component : str
        Component name, see :attr:`CytoMarkPathManager.COMPONENTS`
    base_dir : str or Path, optional
        Base directory. Defaults to ``cytomark_outputs``.

    Returns
    -------
    str
        Output directory path as string
    """
    path_manager = CytoMarkPathManager(base_dir if base_dir is not None else "cytomark_outputs")
    output_dir = path_manager.component_dir(component)
    path_manager.ensure_dir(output_dir)
    return str(output_dir)
