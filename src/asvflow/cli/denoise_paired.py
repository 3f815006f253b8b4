"""
Console script for asvflow (denoise-paired)

Copyright © 2025 Pixelgen Technologies AB.
"""

from pathlib import Path
from typing import Any, Mapping, Optional

import click
import pydantic
from ruamel.yaml.error import YAMLError

from asvflow.cli.common import (
    choice_metavar,
    config_option,
    failure_policy_option,
    logger,
    threads_option,
)
from asvflow.config import ChimeraMethod, PipelineParameters, PoolMethod
from asvflow.exception import (
    ConfigurationError,
    NoReadsPassedFilterError,
    SampleProcessingError,
)
from asvflow.pipeline import run_pipeline
from asvflow.report.tables import (
    check_output_path,
    write_abundance_table,
    write_tracking_table,
)
from asvflow.samples import discover_samples
from asvflow.utils import log_step_start, timer, write_parameters_file

# command line option -> (parameter section, parameter name)
OPTION_FIELDS: dict[str, tuple[Optional[str], str]] = {
    "trunc_len_f": ("filtering", "trunc_len_f"),
    "trunc_len_r": ("filtering", "trunc_len_r"),
    "trim_left_f": ("filtering", "trim_left_f"),
    "trim_left_r": ("filtering", "trim_left_r"),
    "max_ee_f": ("filtering", "max_ee_f"),
    "max_ee_r": ("filtering", "max_ee_r"),
    "trunc_q": ("filtering", "trunc_q"),
    "pool_method": ("denoising", "pool_method"),
    "n_reads_learn": ("denoising", "n_reads_learn"),
    "prior_min_samples": ("denoising", "prior_min_samples"),
    "prior_min_abundance": ("denoising", "prior_min_abundance"),
    "min_overlap": ("merging", "min_overlap"),
    "chimera_method": ("chimeras", "method"),
    "min_parent_fold": ("chimeras", "min_parent_fold"),
    "threads": (None, "threads"),
    "failure_policy": (None, "failure_policy"),
}


def parameter_overrides(options: Mapping[str, Any]) -> dict[str, Any]:
    """Turn the command line options that were given into nested parameters."""
    overrides: dict[str, Any] = {}
    for option, value in options.items():
        if value is None:
            continue
        section, name = OPTION_FIELDS[option]
        if section is None:
            overrides[name] = value
        else:
            overrides.setdefault(section, {})[name] = value
    return overrides


def build_parameters(
    config_file: Optional[str], options: Mapping[str, Any]
) -> PipelineParameters:
    """Validate the pipeline parameters from a config file and the options.

    :param config_file: an optional yaml file with parameter values
    :param options: the command line options, None when not given
    :returns: the validated parameters
    :raises ConfigurationError: if the parameters are invalid
    """
    overrides = parameter_overrides(options)
    try:
        if config_file is not None:
            return PipelineParameters.from_yaml(config_file, **overrides)
        return PipelineParameters.model_validate(overrides)
    except pydantic.ValidationError as exc:
        raise ConfigurationError(f"Invalid parameters:\n{exc}") from exc
    except (TypeError, FileExistsError, YAMLError) as exc:
        raise ConfigurationError(f"Invalid config file {config_file}: {exc}") from exc


@click.command(
    "denoise-paired",
    short_help="denoise paired-end amplicon reads into a sequence variant table",
    options_metavar="<options>",
)
@click.argument(
    "input_dir_f",
    required=True,
    type=click.Path(file_okay=False),
    metavar="INPUT_DIR_F",
)
@click.argument(
    "input_dir_r",
    required=True,
    type=click.Path(file_okay=False),
    metavar="INPUT_DIR_R",
)
@click.option(
    "--output-table",
    required=True,
    type=click.Path(exists=False),
    help="The path of the sequence variant abundance table (tsv)",
)
@click.option(
    "--output-track",
    required=True,
    type=click.Path(exists=False),
    help="The path of the read tracking table (tsv)",
)
@click.option(
    "--filtered-dir-f",
    required=True,
    type=click.Path(exists=False, file_okay=False),
    help="The directory for the filtered forward reads",
)
@click.option(
    "--filtered-dir-r",
    required=True,
    type=click.Path(exists=False, file_okay=False),
    help="The directory for the filtered reverse reads",
)
@click.option(
    "--trunc-len-f",
    default=None,
    type=click.INT,
    help=(
        "Truncate forward reads to this length, shorter reads are discarded. "
        "0 disables truncation  [default: 0]"
    ),
)
@click.option(
    "--trunc-len-r",
    default=None,
    type=click.INT,
    help=(
        "Truncate reverse reads to this length, shorter reads are discarded. "
        "0 disables truncation  [default: 0]"
    ),
)
@click.option(
    "--trim-left-f",
    default=None,
    type=click.INT,
    help="Remove this many bases from the start of forward reads  [default: 0]",
)
@click.option(
    "--trim-left-r",
    default=None,
    type=click.INT,
    help="Remove this many bases from the start of reverse reads  [default: 0]",
)
@click.option(
    "--max-ee-f",
    default=None,
    type=click.FLOAT,
    help="Discard forward reads with more expected errors  [default: 2.0]",
)
@click.option(
    "--max-ee-r",
    default=None,
    type=click.FLOAT,
    help="Discard reverse reads with more expected errors  [default: 2.0]",
)
@click.option(
    "--trunc-q",
    default=None,
    type=click.INT,
    help="Truncate reads at the first base with this quality or less  [default: 2]",
)
@click.option(
    "--min-overlap",
    default=None,
    type=click.INT,
    help="The minimum overlap to merge a read pair  [default: 12]",
)
@click.option(
    "--pool-method",
    default=None,
    type=click.STRING,
    metavar=choice_metavar(PoolMethod),
    help="How samples are pooled during denoising  [default: independent]",
)
@click.option(
    "--chimera-method",
    default=None,
    type=click.STRING,
    metavar=choice_metavar(ChimeraMethod),
    help="How chimeras are detected across samples  [default: consensus]",
)
@click.option(
    "--min-parent-fold",
    default=None,
    type=click.FLOAT,
    help=(
        "The minimum abundance of a chimera parent relative to the chimera, "
        "at least 1  [default: 1.0]"
    ),
)
@click.option(
    "--n-reads-learn",
    default=None,
    type=click.INT,
    help="The number of reads used to learn the error rates, 0 for all  [default: 1000000]",
)
@click.option(
    "--prior-min-samples",
    default=None,
    type=click.INT,
    help="Pseudo-pooling priors are variants found in this many samples  [default: 2]",
)
@click.option(
    "--prior-min-abundance",
    default=None,
    type=click.FLOAT,
    help=(
        "Pseudo-pooling priors also include variants with this total abundance  "
        "[default: inf]"
    ),
)
@threads_option
@failure_policy_option
@config_option
@click.pass_context
@timer
def denoise_paired(
    ctx,
    input_dir_f: str,
    input_dir_r: str,
    output_table: str,
    output_track: str,
    filtered_dir_f: str,
    filtered_dir_r: str,
    config_file: Optional[str],
    **options: Any,
):
    """
    Denoise paired-end amplicon reads into a chimera-filtered sequence
    variant table and a read tracking table
    """
    log_step_start(
        "denoise-paired",
        input_files=[input_dir_f, input_dir_r],
        output=output_table,
        config=config_file,
        **{k: v for k, v in options.items() if v is not None},
    )

    try:
        params = build_parameters(config_file, options)
        samples = discover_samples(input_dir_f, input_dir_r)
        check_output_path(output_table)
        check_output_path(output_track)
    except ConfigurationError as exc:
        logger.error(str(exc))
        raise click.ClickException(str(exc)) from exc

    try:
        result = run_pipeline(samples, params, filtered_dir_f, filtered_dir_r)
    except NoReadsPassedFilterError as exc:
        logger.error(exc.msg)
        ctx.exit(exc.exit_code)
    except SampleProcessingError as exc:
        logger.error(str(exc))
        raise click.ClickException(str(exc)) from exc

    logger.info("5) Write output")
    write_abundance_table(result.nonchimeric_table, output_table)
    write_tracking_table(result.tracking, output_track)

    output_track = Path(output_track)
    write_parameters_file(
        ctx,
        output_track.parent / f"{output_track.stem}.meta.json",
        command_path="asvflow denoise-paired",
    )
