from backend.app.db.arango import db, SESSIONS, EVENTS, CHATBOTS

def verify_data():
    try:
        database = db.get_db()

        # Check Sessions
        sessions_col = database.collection(SESSIONS)
        session_count = sessions_col.count()
        print(f"✅ {SESSIONS}: {session_count} documents")

        if session_count > 0:
            cursor = database.aql.execute(
                f"FOR s IN {SESSIONS} SORT s.startedAt DESC LIMIT 1 RETURN s"
            )
            latest = cursor.next()
            state = "completed" if latest.get("completed") else "open"
            print(f"   Latest Session: {latest['quizId']} ({state}, started {latest['startedAt']})")

        # Check Events
        events_col = database.collection(EVENTS)
        print(f"✅ {EVENTS}: {events_col.count()} documents")

        cursor = database.aql.execute(
            f"FOR e IN {EVENTS} COLLECT t = e.eventType WITH COUNT INTO n RETURN [t, n]"
        )
        for event_type, count in cursor:
            print(f"   - {event_type}: {count}")

        print(f"✅ {CHATBOTS}: {database.collection(CHATBOTS).count()} documents")

    except Exception as e:
        print(f"❌ Error verifying data: {e}")

if __name__ == "__main__":
    verify_data()
