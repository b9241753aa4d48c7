"""Example: Discovering tables in a local workbook and paging through rows."""

import sys

from xlsx_tables import ExcelConfiguration, XlsxDataContext

path = sys.argv[1] if len(sys.argv) > 1 else "examples/sample.xlsx"
context = XlsxDataContext(path, configuration=ExcelConfiguration(eagerness=200))

schema = context.get_schema()
print("Workbook metadata:", context.get_metadata())
for table in schema.tables:
    print(f"\n{table.name}")
    for column in table.columns:
        print(f"  {column.name}: {column.type.value}")

if not schema.tables:
    sys.exit(0)

first = schema.tables[0]
print(f"\nRows of {first.name}:")
with context.execute_query(first) as dataset:
    try:
        while dataset.has_next():
            for _ in range(10):
                row = dataset.next()
                if row is None:
                    break
                print(f"Row {row.row_number + 1}: {row.as_dict()}")

            if not dataset.has_next():
                print("\n--- End of table ---")
                break

            user_input = input("\nPress Enter for next 10 rows, or type 'q' and Enter to quit: ")
            if user_input.lower() == "q":
                break
    except KeyboardInterrupt:
        print("\nUser interrupted. Exiting.")
