"""eda_reports package initializer.

Two exploratory reports, shooting incidents and COVID-19 cases/deaths,
built from shared pipeline stages: loading, cleaning/reshaping, joining,
aggregation and trend fitting.  Plotting helpers turn the finished tables
into figures.  See individual module docstrings for details.
"""
