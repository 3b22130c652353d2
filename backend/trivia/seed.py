from trivia import db
from trivia.models import Question

STARTER_QUESTIONS = [
    ('What does APR stand for?',
     ['Annual Percentage Rate', 'Average Payment Ratio', 'Applied Principal Return', 'Annual Payment Requirement'], 0, 'Finance'),
    ('Which asset class is generally considered the most liquid?',
     ['Real estate', 'Cash', 'Private equity', 'Collectibles'], 1, 'Finance'),
    ('Compound interest is interest earned on...',
     ['Principal only', 'Fees only', 'Principal and previously earned interest', 'Taxes paid'], 2, 'Finance'),
    ('What is a diversified portfolio designed to reduce?',
     ['Liquidity', 'Unsystematic risk', 'Inflation', 'Taxes'], 1, 'Finance'),
    ('A bond\'s price usually does what when interest rates rise?',
     ['Rises', 'Stays the same', 'Falls', 'Doubles'], 2, 'Finance'),
    ('What does ETF stand for?',
     ['Electronic Transfer Fund', 'Exchange-Traded Fund', 'Equity Tax Filing', 'Estimated Total Fee'], 1, 'Finance'),
    ('Which ratio compares a company\'s share price to its earnings per share?',
     ['Debt-to-equity', 'Current ratio', 'Price-to-earnings', 'Quick ratio'], 2, 'Finance'),
    ('An emergency fund is commonly recommended to cover how many months of expenses?',
     ['1 week', '3 to 6 months', '5 years', 'It is not recommended'], 1, 'Finance'),
    ('What is inflation?',
     ['A general rise in prices', 'A fall in interest rates', 'Growth in stock prices', 'A type of tax'], 0, 'Finance'),
    ('Which of these is a liability?',
     ['Savings account', 'Mortgage', 'Stock holding', 'Retirement fund'], 1, 'Finance'),
    ('What does a credit score primarily measure?',
     ['Income', 'Net worth', 'Creditworthiness', 'Spending habits'], 2, 'Finance'),
    ('Dollar-cost averaging means...',
     ['Investing a fixed amount at regular intervals', 'Buying only at market lows',
      'Converting dollars to other currencies', 'Paying off debt monthly'], 0, 'Finance'),
]


def seed_questions() -> int:
    """Replace the question bank with the starter set."""
    Question.query.delete()
    for prompt, options, correct_index, category in STARTER_QUESTIONS:
        db.session.add(Question(
            prompt=prompt,
            options=options,
            correct_index=correct_index,
            category=category,
            admin_created=True,
        ))
    db.session.commit()
    return len(STARTER_QUESTIONS)
