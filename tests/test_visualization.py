import pandas as pd

from finance_tracker.visualization import create_allocation_pie_chart, create_balance_bar_chart


def test_balance_chart_has_spent_and_limit_series():
    frame = pd.DataFrame([
        {'Category': 'Rent', 'Spent': 1200.0, 'Limit': 1200.0},
        {'Category': 'Groceries', 'Spent': 450.0, 'Limit': 400.0},
    ])
    fig = create_balance_bar_chart(frame)
    assert {trace.name for trace in fig.data} == {'Spent', 'Limit'}


def test_empty_inputs_give_placeholder_figure():
    assert create_balance_bar_chart(pd.DataFrame()).layout.title.text == "No data to display"
    assert create_allocation_pie_chart({}).layout.title.text == "No data to display"
    assert create_allocation_pie_chart({'savings': -10.0}).layout.title.text == "No data to display"


def test_allocation_pie_uses_bucket_labels():
    fig = create_allocation_pie_chart({'fixedCosts': 1000.0, 'savings': 400.0, 'investment': 0.0})
    assert list(fig.data[0].labels) == ['Fixed Costs', 'Savings']
