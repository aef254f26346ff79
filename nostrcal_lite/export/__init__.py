"""Calendar export (iCalendar documents and add-to-calendar links)."""
