from models import Entry, Expense, Participant, Payee
import seed


def test_seed_inserts_sample_data_once(db_session):
    assert seed.main([]) == 0
    assert db_session.query(Payee).count() == len(seed.SAMPLE_PAYEES)
    assert db_session.query(Entry).count() == len(seed.SAMPLE_ENTRIES)
    assert db_session.query(Participant).count() == len(seed.SAMPLE_PAYEES)
    assert db_session.query(Expense).count() == len(seed.SAMPLE_EXPENSES)

    assert seed.main([]) == 0
    assert db_session.query(Payee).count() == len(seed.SAMPLE_PAYEES)
