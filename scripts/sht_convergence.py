"""
Spherical Harmonic Transform Convergence Study
===============================================

This script measures how well the real spherical harmonic transform
represents a smooth field on the sphere as the truncation grows.

Test field:
-----------
  f(theta, phi) = exp(sin(theta) * cos(phi - phi0)) + 0.5 * cos(theta)^3

The field is entire, so its harmonic coefficients decay faster than any
power of the degree and the truncation error should fall off geometrically.

Procedure:
----------
For every truncation n in the requested range:
  1. Sample f on the equiangular n x (2n-1) grid (`sphere_grid`).
  2. Forward transform with `RealSphericalHarmonicTransform.to_spectral`.
  3. Reconstruct on the grid with `from_spectral` (round-trip error).
  4. Evaluate the truncated expansion at random points off the grid
     (truncation error).
  5. Record the degree power spectrum  E_l = sum_m |c_l^m|^2.

Results are stored in an xarray Dataset (NetCDF) and the spectra and error
curves are plotted with matplotlib.

Usage:
------
Example:
  python scripts/sht_convergence.py --n-min 4 --n-max 32 --n-test 200
"""

import pathlib
from typing import Annotated

import cyclopts
import jax
import jax.numpy as jnp
import jax.random as jrandom
from jaxtyping import Array, Float
from loguru import logger
import matplotlib.pyplot as plt
import numpy as np
from tqdm import tqdm
import xarray as xr

from sphericalharmonix import (
    RealSphericalHarmonic,
    RealSphericalHarmonicTransform,
    SphericalCoordinate,
    sphere_grid,
)

# JAX configuration
jax.config.update("jax_enable_x64", True)

app = cyclopts.App()


# ============================================================================
# 1. Test Field
# ============================================================================


def smooth_field(x: SphericalCoordinate, phi0: float = 0.3) -> Float[Array, "..."]:
    """Smooth, non-band-limited field on the sphere."""
    return jnp.exp(jnp.sin(x.theta) * jnp.cos(x.phi - phi0)) + 0.5 * jnp.cos(x.theta) ** 3


def random_points(n_points: int, seed: int = 0) -> SphericalCoordinate:
    """Points uniformly distributed on the sphere."""
    key_z, key_phi = jrandom.split(jrandom.PRNGKey(seed))
    z = jrandom.uniform(key_z, (n_points,), minval=-1.0, maxval=1.0)
    phi = jrandom.uniform(key_phi, (n_points,), maxval=2 * jnp.pi)
    return SphericalCoordinate(jnp.arccos(z), phi)


def degree_power(coefficients: Float[Array, " n2"], n: int) -> np.ndarray:
    """E_l = sum over the 2l+1 coefficients of block l of |c|^2."""
    c = np.asarray(coefficients)
    return np.array([np.sum(np.abs(c[ell * ell : (ell + 1) ** 2]) ** 2) for ell in range(n)])


# ============================================================================
# 2. Main Study
# ============================================================================


@app.default
def run_convergence(
    n_min: Annotated[
        int, cyclopts.Option("--n-min", help="Smallest truncation degree.")
    ] = 4,
    n_max: Annotated[
        int, cyclopts.Option("--n-max", help="Largest truncation degree.")
    ] = 32,
    n_step: Annotated[
        int, cyclopts.Option("--n-step", help="Step between truncations.")
    ] = 4,
    n_test: Annotated[
        int,
        cyclopts.Option("--n-test", help="Number of random off-grid test points."),
    ] = 200,
    seed: Annotated[
        int, cyclopts.Option("--seed", help="Seed for the off-grid test points.")
    ] = 0,
    output_dir: Annotated[
        pathlib.Path | None,
        cyclopts.Option("--output-dir", help="Directory to save the output NetCDF."),
    ] = None,
    show: Annotated[
        bool, cyclopts.Option("--show", help="Show the plots interactively.")
    ] = False,
):
    """Run the convergence study for the real spherical harmonic transform."""
    logger.info("=" * 60)
    logger.info("Spherical Harmonic Transform Convergence")
    logger.info("=" * 60)

    truncations = list(range(n_min, n_max + 1, n_step))
    if not truncations:
        raise ValueError(f"Empty truncation range: n_min={n_min}, n_max={n_max}")
    logger.info(f"Truncations: {truncations}")

    X_test = random_points(n_test, seed)
    f_test = smooth_field(X_test)
    logger.success(f"Generated {n_test} off-grid test points")

    roundtrip_error = []
    truncation_error = []
    spectra = np.full((len(truncations), n_max), np.nan)

    for i, n in enumerate(tqdm(truncations, desc="Truncations")):
        grid = sphere_grid(n)
        values = smooth_field(grid)

        P = RealSphericalHarmonicTransform(n)
        c = P.to_spectral(values)
        vector = c.to_vector()

        # --- Round trip on the grid ---
        err_rt = float(jnp.max(jnp.abs(P.from_spectral(c) - values)))
        roundtrip_error.append(err_rt)

        # --- Off-grid truncation error ---
        basis = RealSphericalHarmonic().truncate(n)
        err_tr = float(jnp.max(jnp.abs(basis.expand(vector, X_test) - f_test)))
        truncation_error.append(err_tr)

        spectra[i, :n] = degree_power(vector, n)
        logger.info(
            f"n={n:3d}  round-trip={err_rt:.3e}  truncation={err_tr:.3e}  "
            f"E_(n-1)={spectra[i, n - 1]:.3e}"
        )

    logger.success("Convergence study complete!")

    # ========================================================================
    # 3. Post-processing with xarray
    # ========================================================================
    ds = xr.Dataset(
        data_vars={
            "roundtrip_error": (("n",), np.asarray(roundtrip_error)),
            "truncation_error": (("n",), np.asarray(truncation_error)),
            "power": (("n", "degree"), spectra),
        },
        coords={"n": truncations, "degree": np.arange(n_max)},
        attrs={
            "description": "Real spherical harmonic transform convergence",
            "n_test": n_test,
            "seed": seed,
        },
    )

    if output_dir is None:
        output_dir = pathlib.Path("./output/sht_convergence")
    output_dir.mkdir(parents=True, exist_ok=True)
    output_path = output_dir / "sht_convergence.nc"
    ds.to_netcdf(output_path)
    logger.success(f"Output saved to: {output_path}")

    # ========================================================================
    # 4. Plotting
    # ========================================================================
    logger.info("Generating plots...")
    fig = plot_results(ds)
    fig_path = output_dir / "sht_convergence.png"
    fig.savefig(fig_path, dpi=150)
    logger.success(f"Figure saved to: {fig_path}")
    if show:
        plt.show()


def plot_results(ds: xr.Dataset):
    """Errors against truncation and the power spectrum of the largest truncation."""
    fig, (ax_err, ax_spec) = plt.subplots(1, 2, figsize=(11, 4.5))

    ax_err.semilogy(ds.n, ds.truncation_error, "o-", label="off-grid truncation")
    ax_err.semilogy(ds.n, ds.roundtrip_error, "s--", label="grid round trip")
    ax_err.set_xlabel("n")
    ax_err.set_ylabel("max abs error")
    ax_err.set_title("Transform error")
    ax_err.legend()

    power = ds["power"].isel(n=-1).dropna("degree")
    ax_spec.semilogy(power.degree, power, "o-")
    ax_spec.set_xlabel("degree l")
    ax_spec.set_ylabel("E_l")
    ax_spec.set_title(f"Degree power spectrum, n={int(ds.n[-1])}")

    fig.tight_layout()
    return fig


if __name__ == "__main__":
    app()
