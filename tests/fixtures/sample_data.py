"""
Sample data fixtures for testing

This module provides small survey-style tables that mimic real
questionnaire exports (numeric codes, labelled categoricals, weights,
missing answers) for use in unit tests.
"""

import numpy as np
import pandas as pd


def create_sample_survey_data():
    """
    Create sample survey data for testing.

    Returns:
        pd.DataFrame: 10 respondents with coded and numeric answers
    """
    data = {
        'respondent_id': list(range(1, 11)),
        'sex': [1, 2, 1, 2, 2, 1, 2, 1, np.nan, 2],
        'age': [18, 25, 34, 45, 52, 61, 29, 38, 70, 10],
        'education': ['High', 'Low', 'Medium', 'High', 'Low',
                      'Medium', 'High', None, 'Low', 'Medium'],
        'trust': [3, 4, 2, 5, 1, 3, 4, 2, 5, 3],
        'income': [1200.0, 2500.0, 3100.0, 4000.0, 1800.0,
                   5200.0, 2900.0, np.nan, 3600.0, 2100.0],
        'weight': [1.0, 0.5, 1.5, 1.0, 2.0, 1.0, 0.5, 1.0, 1.5, 1.0],
        'trust_gov': ['Agree', 'Disagree', 'Agree', 'Neutral', 'Agree',
                      'Disagree', 'Agree', 'Neutral', 'Agree', 'Disagree'],
        'trust_media': ['Disagree', 'Disagree', 'Neutral', 'Agree', 'Neutral',
                        'Disagree', 'Agree', 'Agree', 'Disagree', 'Neutral'],
    }
    return pd.DataFrame(data)


def create_labelled_codes():
    """
    Survey codes imported as a labelled categorical (SPSS/Stata style).

    Returns:
        pd.Series: categorical whose categories are the numeric codes
    """
    return pd.Series(pd.Categorical([1, 2, 3, 2, None, 1]), name='q1')


def create_region_data():
    """
    Regional totals for map and treemap tests.

    Returns:
        pd.DataFrame: ISO-3 codes, regions and values
    """
    return pd.DataFrame({
        'iso3c': ['DEU', 'FRA', 'NLD', 'DEU', 'USA'],
        'region': ['Europe', 'Europe', 'Europe', 'Europe', 'Americas'],
        'country': ['Germany', 'France', 'Netherlands', 'Germany', 'United States'],
        'value': [10.0, 20.0, 5.0, 15.0, 40.0],
    })


def create_funnel_data():
    """
    Funnel stages in process order (not alphabetical).

    Returns:
        pd.DataFrame: stage names and counts
    """
    return pd.DataFrame({
        'stage': ['Visited', 'Signed up', 'Activated', 'Paid'],
        'users': [1000, 400, 250, 100],
    })


def create_panel_data():
    """
    Repeated survey waves for timeline tests.

    Returns:
        pd.DataFrame: survey year, a yes/no answer (one missing) and country
    """
    return pd.DataFrame({
        'year': [2020, 2020, 2020, 2020, 2021, 2021, 2021, 2021, 2022, 2022],
        'answer': ['Yes', 'No', 'Yes', 'Yes', 'No', 'No', 'Yes', None, 'Yes', 'Yes'],
        'country': ['A', 'A', 'B', 'B', 'A', 'A', 'B', 'B', 'A', 'B'],
    })
