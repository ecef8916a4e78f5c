from startforge.cli import main

main()
