"""
CLI interface for mlcv evaluation runs.

Three modes over an ARFF train/test pair with an XML label schema:
- tune: regularization grid search over the pooled train+test data
- cv: one cross-validation pass with default hyperparameters
- test: train on the training file, predict the test file
"""

import os
from pathlib import Path
from typing import Optional

import typer

from ..data.loader import load_dataset, load_train_test
from ..evaluation.cross_validation import CrossValidator
from ..evaluation.evaluator import Evaluator
from ..evaluation.predictions import PredictionResults, check_output_directory
from ..models.base_model import BaseClassifier, Hyperparameters
from ..models.mlp_model import MLPClassifierAdapter
from ..tuning.grid_tuner import RegularizationTuner
from ..utils.logging import LoggingMixin
from ..utils.tracking import LoggingObserver, MlflowObserver, RunObserver

MODES = ("tune", "cv", "test")

USAGE = (
    "Usage: mlcv run --train <train file> --test <test file> --xml <label XML file> "
    "--output <output directory> --options <tune|cv|test>\n"
    "Options:\n"
    "\ttune: tune regularization weight\n"
    "\tcv: do cross validation\n"
    "\ttest: train on training set and predict on test set"
)


class EvaluationPipeline(LoggingMixin):
    """Runs one evaluation mode end to end and writes the results."""
    
    def __init__(
        self,
        classifier: Optional[BaseClassifier] = None,
        folds: int = 10,
        hidden_units: Optional[int] = 10,
        n_jobs: int = 1,
        show_progress: bool = False,
        shuffle: bool = True,
        random_state: int = 42,
        observer: Optional[RunObserver] = None
    ):
        self.classifier = classifier or MLPClassifierAdapter(random_state=random_state)
        self.folds = folds
        self.hidden_units = hidden_units
        self.n_jobs = n_jobs
        self.show_progress = show_progress
        self.shuffle = shuffle
        self.random_state = random_state
        self.observer = observer or LoggingObserver()
        self.log_info(f"Initialized evaluation pipeline with {self.classifier}")
    
    def tune(self, train_file: str, test_file: Optional[str], xml_file: str) -> PredictionResults:
        """Tune the regularization weight on the pooled dataset."""
        dataset = load_dataset(train_file, xml_file, test_file=test_file)
        tuner = RegularizationTuner(
            self.classifier,
            n_jobs=self.n_jobs,
            show_progress=self.show_progress,
            shuffle=self.shuffle,
            random_state=self.random_state,
            observer=self.observer
        )
        results = tuner.tune(dataset, self.folds, self.hidden_units)
        self.log_info(f"\n{tuner.get_tuning_history().to_string(index=False)}")
        return results
    
    def cross_validate(self, train_file: str, test_file: Optional[str], xml_file: str) -> PredictionResults:
        """Cross-validate with the default regularization weight."""
        dataset = load_dataset(train_file, xml_file, test_file=test_file)
        validator = CrossValidator(
            self.classifier,
            n_jobs=self.n_jobs,
            show_progress=self.show_progress,
            observer=self.observer
        )
        return validator.cross_validate(
            dataset, self.folds, Hyperparameters(hidden_units=self.hidden_units)
        )
    
    def test(self, train_file: str, test_file: Optional[str], xml_file: str) -> PredictionResults:
        """Train once on the training file and predict the test file."""
        if test_file is None:
            raise ValueError("The test mode requires a test file")
        train, test = load_train_test(train_file, test_file, xml_file)
        model = self.classifier.train(train, Hyperparameters(hidden_units=self.hidden_units))
        return Evaluator(self.classifier).evaluate(model, test)
    
    def run(
        self,
        mode: str,
        train_file: str,
        test_file: Optional[str],
        xml_file: str,
        output_dir: str
    ) -> PredictionResults:
        """
        Run a mode and write predictions.csv and groundtruth.csv.
        
        The output directory is checked before any training starts.
        """
        if mode not in MODES:
            raise ValueError(f"Unknown mode '{mode}', expected one of {MODES}")
        
        check_output_directory(output_dir)
        
        self.log_info(f"Running '{mode}' on {train_file}")
        runner = {'tune': self.tune, 'cv': self.cross_validate, 'test': self.test}[mode]
        results = runner(train_file, test_file, xml_file)
        
        results.write_to_directory(output_dir)
        self.log_info(
            f"Wrote {results.rows} predictions to {output_dir} "
            f"(log-likelihood {results.log_likelihood():.4f})"
        )
        return results


def run_evaluation(
    train: str = typer.Option(..., "--train", help="Training ARFF file"),
    test: Optional[str] = typer.Option(None, "--test", help="Test ARFF file"),
    xml: str = typer.Option(..., "--xml", help="XML label schema file"),
    output: Optional[str] = typer.Option(None, "--output", help="Output directory for CSV results"),
    options: str = typer.Option(..., "--options", help="Mode: tune, cv or test"),
    folds: int = typer.Option(10, envvar="MLCV_FOLDS", help="Cross-validation folds"),
    hidden_units: int = typer.Option(10, envvar="MLCV_HIDDEN_UNITS", help="Hidden layer width"),
    n_jobs: int = typer.Option(1, envvar="MLCV_N_JOBS", help="Folds to run in parallel"),
    progress: bool = typer.Option(False, "--progress/--no-progress", help="Show a progress bar over folds"),
    shuffle: bool = typer.Option(True, "--shuffle/--no-shuffle", help="Shuffle before tuning"),
    random_state: int = typer.Option(42, help="Random state for reproducibility"),
    mlflow_experiment: Optional[str] = typer.Option(
        None, help="MLflow experiment name (enables tracking for tune)"
    )
):
    """Evaluate a multi-label MLP: tune, cross-validate or train/test."""
    
    if options not in MODES:
        typer.echo(USAGE, err=True)
        raise typer.Exit(1)
    
    try:
        observer = None
        if mlflow_experiment and options == "tune":
            observer = MlflowObserver(
                experiment_name=mlflow_experiment,
                tracking_uri=os.environ.get("MLFLOW_TRACKING_URI")
            )
        
        pipeline = EvaluationPipeline(
            folds=folds,
            hidden_units=hidden_units,
            n_jobs=n_jobs,
            show_progress=progress,
            shuffle=shuffle,
            random_state=random_state,
            observer=observer
        )
        results = pipeline.run(options, train, test, xml, output)
        
        typer.echo(f"✅ {options} completed: {results.rows} instances, {results.cols} labels")
        typer.echo(f"Log-likelihood: {results.log_likelihood():.4f}")
        typer.echo(f"Results saved to: {Path(output)}")
        
    except Exception as e:
        typer.echo(f"❌ {options} failed: {e}", err=True)
        raise typer.Exit(1)
