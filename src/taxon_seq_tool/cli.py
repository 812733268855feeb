"""Command-line interface for the taxon sequence search tool."""

import sys
from pathlib import Path

import click

from .config import Config, get_default_config_path, create_example_config
from .cli_utils import echo, secho, outcome_line, set_quiet_mode
from .error_handler import get_error_handler
from .input_parser import InputParser
from .logging_config import setup_logging
from .output_formatter import FORMATS, OutputFormatter
from .pipeline import BatchOrchestrator, SequenceSearchPipeline, build_inputs


@click.command()
@click.argument('taxa', nargs=-1)
@click.option('--input-file', '-i', type=click.Path(exists=True), help='File listing taxa, one per line')
@click.option('--ids', is_flag=True, help='Treat inputs as NCBI taxonomy IDs instead of names')
@click.option('--seqrange', help='Sequence length range, e.g. 1:3000')
@click.option('--getrelated', is_flag=True, help='Search the parent taxon when a taxon has no records')
@click.option('--limit', type=int, help='Maximum records per taxon (NCBI caps at 10000)')
@click.option('--entrez-query', help='Extra Entrez query ANDed to the search, e.g. "18S[Title]"')
@click.option('--hypothetical', is_flag=True, help='Keep predicted (XM_/XR_) records')
@click.option('--workers', type=int, help='Number of taxa searched in parallel')
@click.option('--output', '-o', type=click.Path(), help='Output file (prints a table if omitted)')
@click.option('--output-format', type=click.Choice(FORMATS), help='Output file format')
@click.option('--api-key', envvar='NCBI_API_KEY', help='NCBI API key for increased rate limits')
@click.option('--email', envvar='EMAIL', help='Email for NCBI')
@click.option('--config', type=click.Path(exists=True), help='Configuration file path')
@click.option('--generate-config', is_flag=True, help='Generate example configuration file')
@click.option('--error-report', type=click.Path(), help='Write a JSON report of failed taxa')
@click.option('--no-log-file', is_flag=True, help='Do not write a log file')
@click.option('--verbose', '-v', is_flag=True, help='Enable debug logging')
@click.option('--quiet', '-q', is_flag=True, help='Suppress all output except errors')
def main(taxa, input_file, ids, seqrange, getrelated, limit, entrez_query, hypothetical,
         workers, output, output_format, api_key, email, config, generate_config,
         error_report, no_log_file, verbose, quiet):
    """Search NCBI nucleotide records for taxa.

    Reports length, gene description, accession and GI number of the
    sequences available for each taxon.

    Examples:
        taxon-seq-search "Pythium oopapillum" "Pythium ultimum"
        taxon-seq-search --ids 4792 -o pythium.tsv --getrelated
    """
    if quiet and verbose:
        click.echo("Error: Cannot use both --quiet and --verbose", err=True)
        sys.exit(1)

    set_quiet_mode(quiet)

    if generate_config:
        config_path = create_example_config()
        echo(f"Generated example configuration file: {config_path}")
        sys.exit(0)

    config_path = Path(config) if config else get_default_config_path()
    cfg = Config.from_file(config_path)
    cfg.merge_env_vars()
    cfg.merge_cli_args(
        api_key=api_key,
        email=email,
        seqrange=seqrange,
        limit=limit,
        entrez_query=entrez_query,
        getrelated=getrelated,
        hypothetical=hypothetical,
        workers=workers,
        output_format=output_format,
        no_log_file=no_log_file
    )

    setup_logging(
        log_level='DEBUG' if verbose else cfg.logging.level,
        log_dir=cfg.logging.directory,
        file_logging=cfg.logging.file_logging,
        quiet=quiet
    )

    values = list(taxa)
    if input_file:
        parser = InputParser()
        try:
            values.extend(parser.parse_file(input_file))
        except Exception as e:
            echo(f"ERROR: Failed to parse input file: {e}", err=True)
            sys.exit(1)
        echo(f"Read {len(values) - len(taxa)} taxa from {input_file} "
             f"(format: {parser.get_format_info()['format']})")

    if not values:
        echo(click.get_current_context().get_help())
        return

    try:
        inputs = build_inputs(ids=values) if ids else build_inputs(taxa=values)
    except ValueError as e:
        echo(f"ERROR: {e}", err=True)
        sys.exit(1)

    pipeline = SequenceSearchPipeline(api_config=cfg.api)
    orchestrator = BatchOrchestrator(pipeline, max_workers=cfg.batch.max_workers)
    outcomes = orchestrator.run_all(
        inputs,
        cfg.search.to_constraints(),
        verbose=cfg.batch.verbose and not quiet
    )

    formatter = OutputFormatter(excel_compatible=cfg.output.excel_compatible)

    if output:
        try:
            formatter.write(outcomes, output, format=cfg.output.format)
        except Exception as e:
            echo(f"ERROR: Failed to write output file: {e}", err=True)
            sys.exit(1)
        echo(f"Results written to: {output}")
    else:
        table = formatter.combine(outcomes)
        if not table.empty:
            echo(table.to_string(index=False))

    echo("")
    for outcome in outcomes:
        if outcome.success:
            echo(outcome_line(outcome))
        else:
            secho(outcome_line(outcome), fg='red')

    failed = sum(1 for outcome in outcomes if not outcome.success)
    echo(f"Processed {len(outcomes)} taxa: {len(outcomes) - failed} successful, {failed} failed")

    if error_report and failed:
        get_error_handler().export_error_report(error_report)
        echo(f"Error report written to: {error_report}")


if __name__ == '__main__':
    main()
