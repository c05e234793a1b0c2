# crossfold, Cross-Validation of Rating Predictors
# Copyright (C) 2020  Froomle N.V.
# License: GNU AGPLv3 - https://gitlab.com/recpack-maintainers/recpack/-/blob/master/LICENSE
# Author:
#   Lien Michiels
#   Robin Verachtert

import json
import logging

import click

from crossfold.config import EvaluationConfig
from crossfold.evaluation import CrossfoldEvaluator, CSVResultSink, load_algorithms
from crossfold.exceptions import CrossfoldError, EvaluationAborted
from crossfold.matrix import read_ratings
from crossfold.splitters import SPLIT_MODES, get_profile_splitter

logger = logging.getLogger("crossfold")


@click.command()
@click.option("-c", "--config", type=click.File("r"), required=True, help="YAML file with the algorithms to evaluate.")
@click.option("--data-file", type=click.Path(exists=True, dir_okay=False), required=True)
@click.option("--delimiter", type=str, default="\t", show_default=True)
@click.option("--output-file", type=click.Path(dir_okay=False, writable=True), default="crossfold.csv", show_default=True)
@click.option("--split-mode", type=click.Choice(sorted(SPLIT_MODES), case_sensitive=False), default=None)
@click.option("--num-folds", type=int, default=None)
@click.option("--holdout-fraction", type=float, default=None)
@click.option("--seed", type=int, default=None)
@click.option("--n-jobs", type=int, default=None)
@click.option("--progress/--no-progress", default=True)
def run_crossfold(
    config,
    data_file,
    delimiter,
    output_file,
    split_mode,
    num_folds,
    holdout_fraction,
    seed,
    n_jobs,
    progress,
):
    """Cross-validate the algorithms in CONFIG on the ratings in DATA_FILE.

    Writes one line per prediction to OUTPUT_FILE.
    """
    try:
        # Construct config obj, will also validate the config.
        config_obj = EvaluationConfig(
            config,
            overrides={
                "split_mode": split_mode,
                "num_folds": num_folds,
                "holdout_fraction": holdout_fraction,
                "seed": seed,
                "n_jobs": n_jobs,
            },
        )
        splitter = get_profile_splitter(config_obj.split_mode, config_obj.holdout_fraction, seed=config_obj.seed)
        algorithms = load_algorithms(config_obj.get_algorithms())

        ratings = read_ratings(data_file, delimiter)

        # The evaluator closes the sink once settings are valid,
        # an invalid run leaves an existing output file untouched.
        evaluator = CrossfoldEvaluator(
            ratings,
            algorithms,
            config_obj.num_folds,
            splitter,
            CSVResultSink(output_file),
            seed=config_obj.seed,
            n_jobs=config_obj.n_jobs,
            logger=logger,
            progress=progress,
        )
        summary = evaluator.run()
    except EvaluationAborted as e:
        raise click.ClickException(f"{e} (cause: {e.__cause__!r})")
    except (CrossfoldError, OSError) as e:
        raise click.ClickException(str(e))

    click.echo(json.dumps(summary.to_dict(), indent=2))


if __name__ == "__main__":
    run_crossfold()
